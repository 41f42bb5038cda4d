"""
Project directory name encoding.

Claude Code stores each project's logs in a directory whose name is the
project's absolute path with every separator replaced by a dash.
"""

PLACEHOLDER = "-"
SEPARATOR = "/"


def decode(encoded_dir_name: str) -> str:
    """Decode a project directory name back into a path.

    A leading placeholder marks an absolute path. Names without it are
    decoded the same way but stay relative. Dashes that were part of the
    original path cannot be told apart from separators, so the result is
    best-effort metadata rather than a validated filesystem path.

    Args:
        encoded_dir_name: Directory name under the projects root

    Returns:
        Decoded path string (never raises)
    """
    if encoded_dir_name.startswith(PLACEHOLDER):
        return SEPARATOR + encoded_dir_name[1:].replace(PLACEHOLDER, SEPARATOR)
    return encoded_dir_name.replace(PLACEHOLDER, SEPARATOR)


def encode(path: str) -> str:
    """Encode a path into the directory name Claude Code would use."""
    return path.replace(SEPARATOR, PLACEHOLDER)


def project_name(project_path: str) -> str:
    """Last path component of a decoded project path."""
    stripped = project_path.rstrip(SEPARATOR)
    if not stripped:
        return project_path
    return stripped.rsplit(SEPARATOR, 1)[-1]
