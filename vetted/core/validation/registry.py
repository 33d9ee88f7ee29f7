"""Schema Registry

Process-wide cache of compiled rule trees, keyed by type identity (or any
hashable key a tree was registered under).

- First use compiles, every later use returns the same tree object
- Compile-and-insert runs under a re-entrant lock, so concurrent first
  access observes exactly one tree
- A schema that fails to compile fails the same way on every later call
- Nested rules resolve through here lazily, so recursive and mutually
  referencing schemas need no eager construction
"""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Union

from vetted.core.config import Settings, get_settings
from vetted.core.errors import ErrorCode, SchemaError, schema_error
from vetted.core.logging import registry_logger
from .builder import RecordBuilder, UnionBuilder, compile_tree, derive_tree
from .formats import FormatMatcher, RegexFormatMatcher
from .plan import RecordTree, RuleTree, UnionTree

TreeSource = Union[RuleTree, RecordBuilder, UnionBuilder, Callable[[], Any], None]

_DERIVE = object()


def _key_name(key: Any) -> str:
    return getattr(key, "__name__", None) or str(key)


class SchemaRegistry:
    """Compile-once store of rule trees.

    Usage:
        registry = SchemaRegistry()
        registry.register(User)                      # derive from annotations, lazily
        registry.register("point", point_tree)       # hand-built tree
        tree = registry.get_or_compile(User)
    """

    __slots__ = ("settings", "matcher", "_sources", "_trees", "_failures", "_lock")

    def __init__(self, settings: Settings | None = None, matcher: FormatMatcher | None = None):
        self.settings = settings or get_settings()
        self.matcher = matcher or RegexFormatMatcher(self.settings.ENABLED_FORMATS)
        self._sources: dict[Any, Any] = {}
        self._trees: dict[Any, RuleTree] = {}
        self._failures: dict[Any, SchemaError] = {}
        self._lock = threading.RLock()

    def register(self, key: Any, source: TreeSource = None) -> None:
        """Register a schema source for ``key``. Compilation happens on first use.

        ``source`` may be a built tree, a builder, a zero-argument callable
        returning either, or None to derive the tree from ``key``'s annotations.
        """
        with self._lock:
            if key in self._trees or key in self._failures:
                raise ValueError(f"Schema for {_key_name(key)} is already compiled")
            self._sources[key] = _DERIVE if source is None else source

    def is_registered(self, key: Any) -> bool:
        """True only for keys given to ``register``; compiling on demand does not register."""
        return key in self._sources

    def is_compiled(self, key: Any) -> bool:
        return key in self._trees

    def get_or_compile(self, key: Any) -> RuleTree:
        """Return the compiled tree for ``key``, compiling it on first use.

        Raises:
            SchemaError: the schema cannot be compiled (same error on every call)
        """
        if (tree := self._trees.get(key)) is not None: return tree
        with self._lock:
            if (tree := self._trees.get(key)) is not None: return tree
            if (failure := self._failures.get(key)) is not None: raise failure
            try: tree = self._compile(key)
            except SchemaError as e:
                self._failures[key] = e
                registry_logger().error("schema_compile_failed", schema=_key_name(key),
                    code=e.code.name, error=e.error.message)
                raise
            self._trees[key] = tree
            return tree

    def preload(self, *keys: Any) -> None:
        """Compile schemas eagerly, e.g. at startup."""
        for key in keys: self.get_or_compile(key)

    def clear(self) -> None:
        with self._lock:
            self._sources.clear()
            self._trees.clear()
            self._failures.clear()

    def _resolve(self, key: Any) -> RuleTree:
        source = self._sources.get(key, _DERIVE)
        if source is _DERIVE: return derive_tree(key, self)
        if callable(source): source = source()
        if isinstance(source, (RecordBuilder, UnionBuilder)): source = source.build()
        if not isinstance(source, (RecordTree, UnionTree)):
            raise schema_error(
                f"Schema source for {_key_name(key)} produced {type(source).__name__}, expected a rule tree",
                schema=_key_name(key), origin=_key_name(key), produced=type(source).__name__)
        return source

    def _compile(self, key: Any) -> RuleTree:
        started = time.perf_counter()
        try: tree = compile_tree(self._resolve(key), self.matcher)
        except SchemaError: raise
        except Exception as e:
            raise schema_error(f"Compiling schema {_key_name(key)} failed: {e}",
                code=ErrorCode.E9001_UNEXPECTED_ERROR, schema=_key_name(key),
                origin=_key_name(key), cause=e) from e
        size = len(tree.fields) if isinstance(tree, RecordTree) else len(tree.variants)
        registry_logger().debug("schema_compiled", schema=tree.name, kind=type(tree).__name__,
            size=size, elapsed_ms=round((time.perf_counter() - started) * 1000, 3))
        return tree

    def __repr__(self) -> str:
        return f"SchemaRegistry(compiled={len(self._trees)}, registered={len(self._sources)})"


default_registry = SchemaRegistry()
