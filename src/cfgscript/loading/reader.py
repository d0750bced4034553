"""
Filesystem-backed Resolver/ContentStore.

Module names in ``load()`` are slash-separated and "absolute" within a fixed
root directory: ``load("lib/util.py")`` and ``load("/lib/util.py")`` both
name ``<root>/lib/util.py`` regardless of which module asks. ``..`` segments
are normalized away before joining, so a name can never climb above the root.

Usage:
    from cfgscript.loading.reader import LocalFileReader

    reader = LocalFileReader("/etc/myapp/config")
    path = reader.resolve(token, "lib/common.py", "/etc/myapp/config/main.py")
    source = reader.read_file(token, path)
"""

from __future__ import annotations

import os
import posixpath
from pathlib import Path

from cfgscript.core.cancellation import CancellationToken
from cfgscript.core.errors import FetchError, ResolveError
from cfgscript.core.protocols import ModulePath

# Separators the host treats as path separators besides "/". Module names
# containing one would be split differently on this platform.
_FOREIGN_SEPARATORS: tuple[str, ...] = tuple(
    sep for sep in (os.sep, os.altsep) if sep and sep != "/"
)


class LocalFileReader:
    """Resolves and reads modules from within a filesystem directory."""

    def __init__(self, root: str | os.PathLike[str]):
        if not str(root):
            raise ValueError("LocalFileReader: empty root path")
        self.root = os.path.abspath(root)

    def resolve(self, token: CancellationToken, name: str, from_path: str) -> ModulePath:
        token.check("resolve")
        if not name:
            raise ResolveError(name, "empty module name", from_path=from_path)
        if any(sep in name for sep in _FOREIGN_SEPARATORS):
            raise ResolveError(name, "invalid character in module name", from_path=from_path)
        if "\x00" in name:
            raise ResolveError(name, "invalid character in module name", from_path=from_path)

        if not from_path:
            # Root module: the caller's own filename.
            return os.path.abspath(name)

        cleaned = posixpath.normpath("/" + name).lstrip("/")
        if not cleaned or cleaned == ".":
            raise ResolveError(name, "module name resolves to the root directory", from_path=from_path)
        return os.path.join(self.root, *cleaned.split("/"))

    def read_file(self, token: CancellationToken, path: ModulePath) -> bytes:
        token.check("read")
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise FetchError(path, e) from e

    def __repr__(self) -> str:
        return f"LocalFileReader(root={self.root!r})"


__all__ = ["LocalFileReader"]
