import os
from pathlib import Path, PurePosixPath

MVCIGNORE = ".mvcignore"
MVCCONFIG = ".mvcconfig"

# Always excluded from packing and cleanup when going through the CLI
ALWAYS_IGNORE = {MVCIGNORE, MVCCONFIG}


def _render(path):
    """Render a path as a POSIX string with any leading ./ removed."""
    text = str(path).replace(os.sep, "/")
    while text.startswith("./"):
        text = text[2:]
    return text


def _ancestors(rendered):
    """Yield the path itself, then each parent prefix: a/b/c, a/b, a."""
    current = PurePosixPath(rendered)
    yield str(current)
    for parent in current.parents:
        if str(parent) == ".":
            break
        yield str(parent)


def is_ignored(path, ignore):
    """Check if a relative path or any of its ancestors is in the ignore set.

    Matching is exact string equality against the whole ancestor rendering,
    so "build" matches build/ and build/x but not src/build.
    """
    if Path(path).is_absolute():
        return True
    rendered = _render(path)
    if rendered in ("", "."):
        return True
    for ancestor in _ancestors(rendered):
        if ancestor in ignore:
            return True
    return False


class PathFilter:
    """Ignore decisions for a single traversal, cached per ancestor path.

    With a root, absolute ignore entries inside it are rewritten relative to
    the root so the paths they name are never packed or deleted.
    """

    def __init__(self, ignore, root=None):
        self.root = Path(root).resolve() if root is not None else None
        self.ignore = self._normalize(ignore)
        self._cache = {}

    def _normalize(self, ignore):
        entries = set()
        for entry in ignore:
            entry = str(entry)
            if not Path(entry).is_absolute():
                entries.add(entry)
                continue
            if self.root is None:
                continue
            try:
                relative = Path(entry).resolve().relative_to(self.root)
            except ValueError:
                continue  # outside the tree, can never match
            entries.add(relative.as_posix())
        return entries

    def __call__(self, path):
        if Path(path).is_absolute():
            return True
        rendered = _render(path)
        if rendered in ("", "."):
            return True
        return self._check(rendered)

    def _check(self, rendered):
        cached = self._cache.get(rendered)
        if cached is not None:
            return cached
        if rendered in self.ignore:
            result = True
        else:
            parent = str(PurePosixPath(rendered).parent)
            result = parent != "." and self._check(parent)
        self._cache[rendered] = result
        return result


def load_mvcignore(project_path):
    """Load additional ignore paths from .mvcignore."""
    ignore_file = Path(project_path) / MVCIGNORE
    if not ignore_file.exists():
        return set()
    patterns = set()
    for line in ignore_file.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            patterns.add(line)
    return patterns


def get_ignore_set(project_path, repo_path=None):
    """Get the full ignore set for a project.

    The repository directory is added when it lives inside the project, so a
    snapshot never packs its own archives and a restore never deletes them.
    """
    ignore = set(ALWAYS_IGNORE) | load_mvcignore(project_path)
    if repo_path is not None:
        try:
            relative = Path(repo_path).resolve().relative_to(Path(project_path).resolve())
        except ValueError:
            relative = None
        if relative is not None and relative.parts:
            ignore.add(relative.as_posix())
    return ignore
