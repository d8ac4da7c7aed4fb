"""Tests for the path guard."""

import os

import pytest

from pincer.security.exceptions import PathNotAllowedError, PolicyViolationError, ReadOnlyPathError
from pincer.security.paths import check_allowed, check_writable, is_subpath, resolve_path


@pytest.fixture
def root(temp_dir):
    """Canonical allowed root with one file inside."""
    allowed = temp_dir / "allowed"
    allowed.mkdir()
    (allowed / "notes.txt").write_text("hello")
    return allowed


class TestResolvePath:
    """Tests for resolve_path."""

    def test_existing(self, root):
        """Test an existing path resolves to itself canonically."""
        assert resolve_path(root / "notes.txt") == os.path.realpath(root / "notes.txt")

    def test_missing_tail(self, root):
        """Test missing components are appended to the resolved ancestor."""
        expected = os.path.join(os.path.realpath(root), "new", "deep.txt")

        assert resolve_path(root / "new" / "deep.txt") == expected

    def test_dotdot_normalized(self, root):
        """Test parent references are collapsed."""
        assert resolve_path(root / "sub" / ".." / "notes.txt") == os.path.realpath(root / "notes.txt")

    def test_symlinked_ancestor(self, temp_dir, root):
        """Test a symlink in the existing part is resolved even when the tail is missing."""
        outside = temp_dir / "outside"
        outside.mkdir()
        (root / "link").symlink_to(outside)

        assert resolve_path(root / "link" / "new.txt") == os.path.join(os.path.realpath(outside), "new.txt")


class TestIsSubpath:
    """Tests for is_subpath."""

    def test_component_boundary(self):
        """Test prefix matching respects path components."""
        assert is_subpath("/data/project", "/data/project")
        assert is_subpath("/data/project/a", "/data/project")
        assert not is_subpath("/data/project-other", "/data/project")
        assert is_subpath("/anything", "/")


class TestCheckAllowed:
    """Tests for check_allowed."""

    def test_empty_allows_everything(self, temp_dir):
        """Test no roots means no restriction."""
        assert check_allowed(temp_dir / "x", []) == resolve_path(temp_dir / "x")

    def test_inside_root(self, root):
        """Test a path under a root is returned canonical."""
        assert check_allowed(root / "notes.txt", [str(root)]) == os.path.realpath(root / "notes.txt")

    def test_outside_root(self, temp_dir, root):
        """Test a path outside every root is refused."""
        with pytest.raises(PathNotAllowedError) as exc_info:
            check_allowed(temp_dir / "elsewhere.txt", [str(root)])

        assert "not under any allowed directory" in str(exc_info.value)
        assert isinstance(exc_info.value, PolicyViolationError)

    def test_dotdot_escape(self, root):
        """Test traversal out of the root is refused."""
        with pytest.raises(PathNotAllowedError):
            check_allowed(f"{root}/../escape.txt", [str(root)])

    def test_symlink_escape(self, temp_dir, root):
        """Test a symlink inside the root pointing outside is refused."""
        outside = temp_dir / "secret"
        outside.mkdir()
        (outside / "key").write_text("s3cr3t")
        (root / "shortcut").symlink_to(outside)

        with pytest.raises(PathNotAllowedError):
            check_allowed(root / "shortcut" / "key", [str(root)])

    def test_symlink_escape_for_new_file(self, temp_dir, root):
        """Test a not-yet-existing file behind an escaping symlink is refused."""
        outside = temp_dir / "secret"
        outside.mkdir()
        (root / "shortcut").symlink_to(outside)

        with pytest.raises(PathNotAllowedError):
            check_allowed(root / "shortcut" / "planted.txt", [str(root)])

    def test_dangling_symlink_escape(self, temp_dir, root):
        """Test a dangling link whose target lies outside the root is refused."""
        outside = temp_dir / "outside"
        outside.mkdir()
        (root / "link").symlink_to(outside / "new.txt")

        with pytest.raises(PathNotAllowedError):
            check_allowed(root / "link", [str(root)])

    def test_dangling_symlink_inside(self, root):
        """Test a dangling link to a missing file inside the root resolves to its target."""
        (root / "pending").symlink_to(root / "later.txt")

        assert check_allowed(root / "pending", [str(root)]) == os.path.join(os.path.realpath(root), "later.txt")

    def test_sibling_prefix(self, temp_dir, root):
        """Test a sibling sharing the root's name prefix is refused."""
        sibling = temp_dir / "allowed-not"
        sibling.mkdir()

        with pytest.raises(PathNotAllowedError):
            check_allowed(sibling / "x", [str(root)])


class TestCheckWritable:
    """Tests for check_writable."""

    def test_not_read_only(self, root):
        """Test paths outside read-only roots pass."""
        assert check_writable(root / "notes.txt", []) == os.path.realpath(root / "notes.txt")

    def test_read_only(self, root):
        """Test paths under a read-only root are refused."""
        with pytest.raises(ReadOnlyPathError) as exc_info:
            check_writable(root / "notes.txt", [str(root)])

        assert exc_info.value.path == str(root / "notes.txt")
