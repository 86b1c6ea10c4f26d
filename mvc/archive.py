"""Tar packing, unpacking and pre-restore cleanup of a working tree.

Archives are plain (uncompressed) tar files. Entry names are POSIX paths
relative to the packed root. Directories are stored without content, symlinks
as link entries with their target, regular files with their bytes.
"""

import os
import tarfile
from pathlib import Path

from mvc.errors import ArchiveError, NotFoundError
from mvc.ignore import PathFilter


def _raise(error):
    raise error


def _as_filter(ignore, root):
    if isinstance(ignore, PathFilter):
        return ignore
    return PathFilter(ignore, root)


def walk(root, path_filter):
    """Yield (relative, full) for every non-ignored entry, parents first.

    Symlinks are never followed. Ignored directories are not descended into.
    """
    root = Path(root)
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        rel_dir = Path(dirpath).relative_to(root)
        descend = []
        for name in sorted(dirnames):
            rel = rel_dir / name
            if path_filter(rel):
                continue
            full = Path(dirpath) / name
            yield rel, full
            if not full.is_symlink():
                descend.append(name)
        dirnames[:] = descend
        for name in sorted(filenames):
            rel = rel_dir / name
            if not path_filter(rel):
                yield rel, Path(dirpath) / name


def pack(source_root, archive_path, ignore):
    """Pack every non-ignored entry under source_root into archive_path.

    An absolute source_root is excluded as a whole, like any absolute path:
    the archive is written but holds no entries. Returns the number of
    entries written.
    """
    source_root = Path(source_root)
    archive_path = Path(archive_path)
    path_filter = _as_filter(ignore, source_root)
    if not source_root.is_dir():
        raise ArchiveError(f"Not a directory: {source_root}", path=str(source_root))

    archive_abs = os.path.abspath(archive_path)
    count = 0
    try:
        with tarfile.open(archive_path, "w", format=tarfile.GNU_FORMAT) as tar:
            if source_root.is_absolute():
                return count
            for rel, full in walk(source_root, path_filter):
                # Never pack the archive being written
                if os.path.abspath(full) == archive_abs:
                    continue
                tarinfo = tar.gettarinfo(str(full), arcname=rel.as_posix())
                if tarinfo is None:
                    continue  # sockets and other types tar cannot hold
                if tarinfo.isreg():
                    with open(full, "rb") as f:
                        tar.addfile(tarinfo, f)
                else:
                    tar.addfile(tarinfo)
                count += 1
    except (OSError, tarfile.TarError) as e:
        path = getattr(e, "filename", None) or str(source_root)
        raise ArchiveError(f"Failed to pack {path}: {e}", path=str(path), archive=str(archive_path)) from e
    return count


def _check_members(members, destination):
    """Reject members that would land outside the destination."""
    base = os.path.abspath(destination)
    for member in members:
        member_path = os.path.normpath(os.path.join(base, member.name))
        if member_path != base and not member_path.startswith(base + os.sep):
            raise ArchiveError(f"Unsafe path in archive: {member.name!r}", member=member.name)


def _restore_mode(member, dest_path):
    """tarfile's "tar" filter, keeping the group/other write bits it clears."""
    filtered = tarfile.tar_filter(member, dest_path)
    if filtered.mode is not None and member.mode is not None:
        filtered = filtered.replace(mode=filtered.mode | (member.mode & 0o022), deep=False)
    return filtered


def unpack(archive_path, destination_root):
    """Extract every entry of archive_path under destination_root."""
    archive_path = Path(archive_path)
    destination = Path(destination_root)
    if not archive_path.exists():
        raise NotFoundError(f"Archive not found: {archive_path}", path=str(archive_path))
    try:
        destination.mkdir(parents=True, exist_ok=True)
        with tarfile.open(archive_path, "r") as tar:
            members = tar.getmembers()
            _check_members(members, destination)
            tar.extractall(destination, members=members, filter=_restore_mode)
    except (OSError, tarfile.TarError) as e:
        raise ArchiveError(
            f"Failed to unpack {archive_path} into {destination}: {e}",
            path=str(archive_path),
            destination=str(destination),
        ) from e


def _mark_kept(rel_dir, kept):
    for path in [rel_dir, *rel_dir.parents]:
        if path in kept:
            break
        kept.add(path)


def clean(root, ignore):
    """Remove every non-ignored entry under root, deepest entries first.

    Directories that still hold an ignored descendant are kept. The root
    itself is never removed. An absolute root is excluded as a whole and left
    untouched. Returns the number of removed entries.
    """
    root = Path(root)
    if root.is_absolute() or not root.exists():
        return 0
    path_filter = _as_filter(ignore, root)

    entries = []
    kept = set()
    try:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            rel_dir = Path(dirpath).relative_to(root)
            descend = []
            for name in sorted(dirnames):
                rel = rel_dir / name
                if path_filter(rel):
                    _mark_kept(rel_dir, kept)
                    continue
                full = Path(dirpath) / name
                is_dir = not full.is_symlink()
                entries.append((rel, full, is_dir))
                if is_dir:
                    descend.append(name)
            dirnames[:] = descend
            for name in sorted(filenames):
                rel = rel_dir / name
                if path_filter(rel):
                    _mark_kept(rel_dir, kept)
                    continue
                entries.append((rel, Path(dirpath) / name, False))

        # Pre-order reversed: every child comes before its parent
        removed = 0
        for rel, full, is_dir in reversed(entries):
            if is_dir:
                if rel in kept:
                    continue
                full.rmdir()
            else:
                full.unlink()
            removed += 1
    except OSError as e:
        path = getattr(e, "filename", None) or str(root)
        raise ArchiveError(f"Failed to clean {path}: {e}", path=str(path)) from e
    return removed
