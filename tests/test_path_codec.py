"""
Unit tests for project directory name decoding.
"""

from claude_usage.core.path_codec import decode, encode, project_name


class TestDecode:
    """Test directory name decoding."""

    def test_absolute_path(self):
        """Leading dash marks an absolute path."""
        assert decode("-Users-liang-Downloads-Data") == "/Users/liang/Downloads/Data"

    def test_relative_fallback(self):
        """Names without a leading dash stay relative."""
        assert decode("projects-app") == "projects/app"

    def test_single_dash(self):
        assert decode("-") == "/"

    def test_empty(self):
        assert decode("") == ""

    def test_original_dashes_become_separators(self):
        """Dashes inside path components are not recoverable."""
        assert decode("-home-me-my-app") == "/home/me/my/app"


class TestEncode:
    """Test path encoding."""

    def test_encode_absolute(self):
        assert encode("/Users/liang/Downloads/Data") == "-Users-liang-Downloads-Data"

    def test_decode_encoded(self):
        path = "/var/projects/api"
        assert decode(encode(path)) == path


class TestProjectName:
    """Test basename extraction."""

    def test_basename(self):
        assert project_name("/Users/liang/Downloads/Data") == "Data"

    def test_trailing_separator(self):
        assert project_name("/srv/app/") == "app"

    def test_root(self):
        assert project_name("/") == "/"
