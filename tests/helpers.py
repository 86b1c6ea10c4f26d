def write_tree(root, files):
    """Create files from a {relative path: text} mapping."""
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)


def read_tree(root):
    """Map every entry under root to its text (files), "<dir>" or "-> target" (links)."""
    tree = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        if path.is_symlink():
            tree[rel] = f"-> {path.readlink()}"
        elif path.is_dir():
            tree[rel] = "<dir>"
        else:
            tree[rel] = path.read_text()
    return tree
