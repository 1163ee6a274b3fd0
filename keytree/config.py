"""Configuration system for keytree.

This module defines how users tune an EntityTree: which lookup cache
sits in front of the record store, how traversals report corrupt data,
and whether writes are validated.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class CacheStrategy(Enum):
    """How store lookups are cached.

    Every strategy is cleared wholesale on any store change notification,
    so the choice only affects eviction between writes.
    """
    NONE = "none"   # Every lookup hits the store
    TTL = "ttl"     # cachetools.TTLCache, entries expire after ttl seconds
    LRU = "lru"     # cachetools.LRUCache, least recently used evicted first


@dataclass
class CacheConfig:
    """Configuration for the lookup cache in front of the record store."""

    strategy: CacheStrategy = CacheStrategy.TTL
    max_size: int = 10000    # Maximum number of cached lookups
    ttl: float = 300.0       # Seconds, only used by CacheStrategy.TTL

    @property
    def enabled(self) -> bool:
        return self.strategy is not CacheStrategy.NONE


@dataclass
class TraversalConfig:
    """Configuration for the traversal engine."""

    warn_on_cycle: bool = True   # Log a warning when a traversal meets a cycle
    sort_children: bool = True   # Apply sibling ordering to children lookups


@dataclass
class TreeConfig:
    """Complete configuration for an EntityTree.

    Example:
        >>> config = TreeConfig(cache=CacheConfig(strategy=CacheStrategy.LRU))
        >>> config.validate()
    """

    cache: CacheConfig = field(default_factory=CacheConfig)
    traversal: TraversalConfig = field(default_factory=TraversalConfig)
    validate_on_write: bool = True

    def validate(self) -> None:
        """Check configuration consistency.

        Raises:
            ValueError: If a cache limit is not positive
        """
        if self.cache.max_size <= 0:
            raise ValueError(f"cache.max_size must be positive, got {self.cache.max_size}")
        if self.cache.strategy is CacheStrategy.TTL and self.cache.ttl <= 0:
            raise ValueError(f"cache.ttl must be positive, got {self.cache.ttl}")

    @classmethod
    def from_kwargs(cls, **kwargs: Any) -> "TreeConfig":
        """Build a TreeConfig from flat keyword arguments.

        Recognised keywords: cache_strategy (CacheStrategy or its string
        value), cache_max_size, cache_ttl, warn_on_cycle, sort_children,
        validate_on_write.

        Raises:
            TypeError: If an unknown keyword is given
            ValueError: If the resulting configuration is invalid
        """
        config = cls()

        if 'cache_strategy' in kwargs:
            config.cache.strategy = _parse_cache_strategy(kwargs.pop('cache_strategy'))

        if 'cache_max_size' in kwargs:
            config.cache.max_size = kwargs.pop('cache_max_size')

        if 'cache_ttl' in kwargs:
            config.cache.ttl = kwargs.pop('cache_ttl')

        if 'warn_on_cycle' in kwargs:
            config.traversal.warn_on_cycle = kwargs.pop('warn_on_cycle')

        if 'sort_children' in kwargs:
            config.traversal.sort_children = kwargs.pop('sort_children')

        if 'validate_on_write' in kwargs:
            config.validate_on_write = kwargs.pop('validate_on_write')

        if kwargs:
            raise TypeError(f"Unknown configuration options: {', '.join(sorted(kwargs))}")

        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cache_strategy': self.cache.strategy.value,
            'cache_max_size': self.cache.max_size,
            'cache_ttl': self.cache.ttl,
            'warn_on_cycle': self.traversal.warn_on_cycle,
            'sort_children': self.traversal.sort_children,
            'validate_on_write': self.validate_on_write,
        }


def _parse_cache_strategy(strategy: Any) -> CacheStrategy:
    """Parse a cache strategy from an enum member or its string value."""
    if isinstance(strategy, CacheStrategy):
        return strategy
    if isinstance(strategy, str):
        try:
            return CacheStrategy(strategy.lower())
        except ValueError:
            pass
    raise ValueError(
        f"Unknown cache strategy: {strategy}. "
        f"Choose from: {', '.join(s.value for s in CacheStrategy)}"
    )
