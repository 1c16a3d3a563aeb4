def file_test_open(path: str) -> bool:
    """Return True if ``path`` can be opened for reading. The handle is closed right away."""
    if not path:
        return False
    try:
        with open(path, "rb"):
            return True
    except OSError:
        return False
