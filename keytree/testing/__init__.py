"""Testing utilities for keytree consumers."""

from .fixtures import FailingRecordStore, InjectedWriteError, make_store, node_keys

__all__ = ['FailingRecordStore', 'InjectedWriteError', 'make_store', 'node_keys']
