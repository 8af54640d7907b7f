"""Turn the flat archive index into a rooted tree of nodes.

Every path in the index is resolved exactly once. Symlinks do not get a node of their own: the name of the link is
bound in its parent directory to the node of whatever the link points at. The same node can therefore be reachable
through more than one path, but it only ever has one canonical path.
"""

from __future__ import annotations

import posixpath
from types import MappingProxyType
from typing import TYPE_CHECKING

from dissect.tarfs.exceptions import (
    ConflictError,
    FileNotFoundError,
    NotADirectoryError,
    SymlinkRecursionError,
)
from dissect.tarfs.helpers import fsutil
from dissect.tarfs.helpers.logging import get_logger
from dissect.tarfs.index import ROOT, EntryType, RawEntry

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

log = get_logger(__name__)

_ACTIVE = "active"
_DONE = "done"


class _Unresolved(Exception):
    """Raised by a lookup that passes through an indexed path which has not been resolved yet."""

    def __init__(self, path: str):
        super().__init__(path)
        self.path = path


class Node:
    """A resolved file or directory."""

    __slots__ = ("children", "gid", "implicit", "mode", "mtime", "offset", "path", "size", "type", "uid")

    def __init__(self, path: str, entry: RawEntry):
        self.path = path
        self.type = entry.type
        self.size = entry.size
        self.mode = entry.mode
        self.mtime = entry.mtime
        self.uid = entry.uid
        self.gid = entry.gid
        self.offset = entry.offset
        self.implicit = entry.implicit
        self.children: Mapping[str, Node] | None = {} if entry.type is EntryType.DIR else None

    def __repr__(self) -> str:
        return f"<Node {self.type.value} {self.path or '.'!r}>"

    @property
    def name(self) -> str:
        return fsutil.basename(self.path)

    def is_dir(self) -> bool:
        return self.type is EntryType.DIR

    def is_file(self) -> bool:
        return self.type is EntryType.FILE

    def update(self, entry: RawEntry) -> None:
        """Take over the metadata of an explicit directory member."""
        self.mode = entry.mode
        self.mtime = entry.mtime
        self.uid = entry.uid
        self.gid = entry.gid
        self.implicit = entry.implicit

    def walk(self) -> Iterator[Node]:
        """Yield every distinct node reachable from this node, including itself."""
        seen = set()
        stack = [self]
        while stack:
            node = stack.pop()
            if id(node) in seen:
                continue
            seen.add(id(node))
            yield node
            if node.is_dir():
                stack.extend(node.children.values())


class TreeResolver:
    """Resolve the entries of an archive index into a tree of :class:`Node` objects.

    Resolution is memoized per path and does not depend on the order of the entries. A symlink may point at an
    entry that is listed before or after it, as long as the chain of links ends in a file or directory.

    Args:
        entries: The archive index as returned by :func:`~dissect.tarfs.index.build_index`.
    """

    def __init__(self, entries: dict[str, RawEntry]):
        self.entries = entries
        self.root = Node(ROOT, entries[ROOT])
        self.nodes: dict[str, Node] = {ROOT: self.root}
        self._resolving: set[str] = set()

    def resolve_all(self) -> Node:
        """Resolve every entry of the index and return the frozen root node.

        Raises:
            SymlinkRecursionError: If symlinks form a loop, or a directory symlink would make a directory its own
                descendant.
            NotADirectoryError: If a path continues through a file.
            FileNotFoundError: If a member lives below a path that does not resolve.
            ConflictError: If two different nodes claim the same name in a directory.
        """
        pending = list(self.entries)
        failed = {}

        # Entries below a symlink are only reachable through the canonical path of the link target after that link
        # got resolved, so keep retrying the misses until a round makes no progress.
        while pending:
            failed = {}
            for path in pending:
                try:
                    self.resolve(path)
                except FileNotFoundError as e:
                    failed[path] = e

            if len(failed) == len(pending):
                break
            pending = list(failed)

        for path, exc in failed.items():
            if self.entries[path].type is EntryType.SYMLINK and self._parent_exists(path):
                log.debug("Skipping dangling symlink %r -> %r", path, self.entries[path].linkname)
                continue
            if isinstance(exc.__cause__, NotADirectoryError):
                # A member below a symlink that runs through a file
                raise exc.__cause__
            raise exc

        self._check_acyclic()

        for node in self.root.walk():
            if node.is_dir():
                node.children = MappingProxyType(node.children)

        log.debug("Resolved %d paths into %d nodes", len(self.nodes), len({id(n) for n in self.nodes.values()}))
        return self.root

    def resolve(self, path: str) -> Node:
        """Return the node for the indexed ``path``, resolving it and everything it depends on first.

        Parent directories and symlink targets that are not resolved yet are pushed onto an explicit stack, so the
        depth of a chain of symlinks is not limited by the interpreter's recursion limit.
        """
        if path in self.nodes:
            return self.nodes[path]

        if path not in self.entries:
            raise FileNotFoundError(path)

        stack = [path]
        self._resolving.add(path)
        try:
            while stack:
                current = stack[-1]
                try:
                    self._resolve_entry(current)
                except _Unresolved as e:
                    if e.path in self._resolving:
                        raise SymlinkRecursionError(f"Symlink loop detected for {e.path!r}") from None
                    stack.append(e.path)
                    self._resolving.add(e.path)
                    continue

                stack.pop()
                self._resolving.discard(current)
        finally:
            self._resolving.difference_update(stack)

        return self.nodes[path]

    def _resolve_entry(self, path: str) -> None:
        # Nothing is changed until every lookup succeeded, so a frame can simply be retried
        entry = self.entries[path]
        parent = self.lookup_dir(fsutil.dirname(path))
        name = fsutil.basename(path)

        if entry.type is EntryType.SYMLINK:
            node = self._follow(parent, entry)
            if node.is_dir() and self._is_ancestor(node, parent):
                # Things like usr/bin/X11 -> . can be looked up through, but are not part of the tree
                log.warning("Not mapping symlink %r -> %r into its own parent directory", path, entry.linkname)
                self.nodes[path] = node
                return
        else:
            node = self._materialize(parent, name, entry)

        self._attach(parent, name, node)
        self.nodes[path] = node

    def lookup(self, path: str) -> Node:
        """Walk ``path`` from the root through the nodes resolved so far.

        A component that is indexed but not resolved yet raises :class:`_Unresolved` for :meth:`resolve` to handle.

        Raises:
            NotADirectoryError: If a non-final component is a file.
            FileNotFoundError: If a component does not exist (yet).
        """
        node = self.root
        for part in fsutil.split_parts(path):
            if not node.is_dir():
                raise NotADirectoryError(f"{node.path!r} is not a directory (resolving {path!r})")
            node = self._child(node, part)
        return node

    def lookup_dir(self, path: str) -> Node:
        node = self.lookup(path)
        if not node.is_dir():
            raise NotADirectoryError(f"{path!r} is not a directory")
        return node

    def _child(self, node: Node, name: str) -> Node:
        path = fsutil.join(node.path, name)
        if path in self.nodes:
            return self.nodes[path]
        if path in self.entries:
            raise _Unresolved(path)
        if name in node.children:
            return node.children[name]
        raise FileNotFoundError(path)

    def _follow(self, parent: Node, entry: RawEntry) -> Node:
        # Relative targets start from the directory the link really lives in, ".." stops at the archive root
        target = posixpath.normpath(fsutil.join("/", parent.path, entry.linkname)).lstrip("/")

        try:
            node = self.lookup(target)
        except NotADirectoryError as e:
            # A link through a file is as dangling as a link to nothing
            raise FileNotFoundError(f"Symlink {entry.path!r} -> {entry.linkname!r} does not resolve") from e

        log.trace("Resolved symlink %r -> %r", entry.path, node.path)
        return node

    def _materialize(self, parent: Node, name: str, entry: RawEntry) -> Node:
        path = fsutil.join(parent.path, name)

        existing = parent.children.get(name)
        if entry.type is EntryType.DIR and existing is not None and existing.is_dir() and existing.path == path:
            # The same directory, reached once through its own path and once through a symlinked parent
            if existing.implicit or (not entry.implicit and entry.path == path):
                existing.update(entry)
            return existing

        return Node(path, entry)

    def _attach(self, parent: Node, name: str, node: Node) -> None:
        existing = parent.children.get(name)
        if existing is None:
            parent.children[name] = node
        elif existing is not node:
            raise ConflictError(
                f"Conflicting entries for {fsutil.join(parent.path, name)!r}: {existing.path!r} and {node.path!r}"
            )

    def _is_ancestor(self, node: Node, parent: Node) -> bool:
        # Canonical paths follow real directory edges, so a prefix means a real ancestor
        return not node.path or parent.path == node.path or parent.path.startswith(node.path + "/")

    def _check_acyclic(self) -> None:
        """Make sure no directory symlink made a directory its own descendant.

        A single depth first walk over the finished tree; a directory that is reached again while it is still on the
        walk stack closes a loop.
        """
        state = {id(self.root): _ACTIVE}
        stack = [(self.root, iter(self.root.children.items()))]
        while stack:
            node, children = stack[-1]
            for name, child in children:
                if not child.is_dir():
                    continue

                seen = state.get(id(child))
                if seen == _ACTIVE:
                    raise SymlinkRecursionError(
                        f"Symlink {fsutil.join(node.path, name)!r} -> {child.path or '.'!r} creates a directory loop"
                    )
                if seen is None:
                    state[id(child)] = _ACTIVE
                    stack.append((child, iter(child.children.items())))
                    break
            else:
                state[id(node)] = _DONE
                stack.pop()

    def _parent_exists(self, path: str) -> bool:
        try:
            return self.resolve(fsutil.dirname(path)).is_dir()
        except FileNotFoundError:
            return False


def resolve_tree(entries: dict[str, RawEntry]) -> Node:
    """Resolve an archive index into a frozen tree and return its root :class:`Node`."""
    return TreeResolver(entries).resolve_all()
