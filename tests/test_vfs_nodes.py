"""
Tests for VFS node classes and the EntryStore.

Tests focus on:
- Directory child bookkeeping (insert, lookup, remove by identity)
- Shared content between hard-link aliases
- Permission masks and mode strings
- Inode allocation and destruction
"""

import pytest

from memfs.vfs.base import (
    ContentBuffer,
    DirectoryNode,
    FileNode,
    LinkHealth,
    NodeType,
    Permission,
    SymlinkNode,
    format_mode,
    validate_mode,
)
from memfs.vfs.errors import (
    DirectoryNotEmptyError,
    ErrorKind,
    InvalidArgumentError,
    IsADirectoryError,
    NameConflictError,
    NotADirectoryError,
    NotFoundError,
    PermissionDeniedError,
)
from memfs.vfs.store import ROOT_INODE, EntryStore, validate_name


@pytest.fixture
def store():
    """Create a store with default modes."""
    return EntryStore()


@pytest.fixture
def root(store):
    """Create a fresh root directory."""
    return store.create_root()


class TestDirectoryNode:
    """Test directory child management."""

    def test_insert_sets_parent(self):
        """
        Given: An empty directory
        When: A node is inserted
        Then: The node's parent points back at the directory
        """
        directory = DirectoryNode("docs", 2)
        child = FileNode("notes", 3)

        directory.insert(child)

        assert child.parent is directory
        assert directory.get_child("notes") is child
        assert len(directory) == 1

    def test_get_child_missing_returns_none(self):
        directory = DirectoryNode("docs", 2)
        assert directory.get_child("nothing") is None

    def test_list_children_returns_copy(self):
        directory = DirectoryNode("docs", 2)
        directory.insert(FileNode("a", 3))

        children = directory.list_children()
        children.clear()

        assert len(directory) == 1

    def test_remove_by_identity(self):
        """
        Given: A directory holding a node
        When: A different node with the same name is removed
        Then: NotFoundError is raised and the original stays
        """
        directory = DirectoryNode("docs", 2)
        original = FileNode("notes", 3)
        directory.insert(original)

        with pytest.raises(NotFoundError):
            directory.remove(FileNode("notes", 4))

        assert directory.get_child("notes") is original

    def test_remove_detaches_node(self):
        directory = DirectoryNode("docs", 2)
        child = FileNode("notes", 3)
        directory.insert(child)

        directory.remove(child)

        assert child.parent is None
        assert directory.is_empty()

    def test_info_includes_children_count(self):
        directory = DirectoryNode("docs", 2)
        directory.insert(FileNode("a", 3))
        directory.insert(FileNode("b", 4))

        assert directory.get_info()["children_count"] == 2


class TestNodePaths:
    """Test absolute path construction."""

    def test_root_path(self, root):
        assert root.get_path() == "/"

    def test_nested_path(self, store, root):
        docs = store.create(NodeType.DIRECTORY, "docs", root)
        notes = store.create(NodeType.FILE, "notes", docs)

        assert notes.get_path() == "/docs/notes"

    def test_is_ancestor_of(self, store, root):
        a = store.create(NodeType.DIRECTORY, "a", root)
        b = store.create(NodeType.DIRECTORY, "b", a)

        assert root.is_ancestor_of(b)
        assert a.is_ancestor_of(b)
        assert not b.is_ancestor_of(a)
        assert not a.is_ancestor_of(a)


class TestPermissions:
    """Test permission masks and their rendering."""

    def test_format_mode_file(self):
        assert format_mode(NodeType.FILE, 6) == "-rw-"

    def test_format_mode_directory(self):
        assert format_mode(NodeType.DIRECTORY, 7) == "drwx"

    def test_format_mode_symlink_no_bits(self):
        assert format_mode(NodeType.SYMLINK, 0) == "l---"

    @pytest.mark.parametrize("mode", [-1, 8, True, "6"])
    def test_validate_mode_rejects_out_of_range(self, mode):
        with pytest.raises(InvalidArgumentError):
            validate_mode(mode)

    def test_allows_checks_every_bit(self):
        node = FileNode("f", 2, permissions=Permission.READ)

        assert node.allows(Permission.READ)
        assert not node.allows(Permission.WRITE)
        assert not node.allows(Permission.READ | Permission.WRITE)

    def test_symlink_permissions_cannot_change(self):
        """
        Given: A symbolic link
        When: Its permissions are assigned
        Then: PermissionDeniedError is raised and the mask stays 7
        """
        link = SymlinkNode("l", 2, "/target")

        with pytest.raises(PermissionDeniedError):
            link.permissions = 4

        assert link.permissions == 7
        assert link.mode_string == "lrwx"


class TestContentBuffer:
    """Test reference-counted shared content."""

    def test_starts_with_one_link(self):
        buffer = ContentBuffer(b"abc")
        assert buffer.link_count == 1
        assert len(buffer) == 3

    def test_release_frees_bytes_at_zero(self):
        buffer = ContentBuffer(b"abc")
        buffer.acquire()

        assert buffer.release() == 1
        assert bytes(buffer.data) == b"abc"
        assert buffer.release() == 0
        assert buffer.released
        assert len(buffer) == 0

    def test_write_visible_through_all_aliases(self):
        buffer = ContentBuffer()
        first = FileNode("a", 2, content=buffer)
        buffer.acquire()
        second = FileNode("b", 2, content=buffer)

        first.write_at(0, b"shared")

        assert second.read_content() == b"shared"
        assert first.link_count == second.link_count == 2

    def test_write_past_end_zero_fills(self):
        node = FileNode("f", 2)
        node.write_at(3, b"x")
        assert node.read_content() == b"\x00\x00\x00x"


class TestEntryStore:
    """Test entry creation, aliasing and destruction."""

    def test_root_gets_first_inode(self, root):
        assert root.inode == ROOT_INODE
        assert root.permissions == 7

    def test_inodes_increase(self, store, root):
        a = store.create(NodeType.FILE, "a", root)
        b = store.create(NodeType.FILE, "b", root)
        assert b.inode > a.inode > root.inode

    def test_default_modes(self, store, root):
        f = store.create(NodeType.FILE, "f", root)
        d = store.create(NodeType.DIRECTORY, "d", root)

        assert f.permissions == 6
        assert d.permissions == 7

    def test_custom_default_modes(self):
        store = EntryStore(default_file_mode=4, default_dir_mode=5)
        root = store.create_root()

        assert store.create(NodeType.FILE, "f", root).permissions == 4
        assert root.permissions == 5

    def test_name_conflict(self, store, root):
        store.create(NodeType.FILE, "notes", root)

        with pytest.raises(NameConflictError) as exc_info:
            store.create(NodeType.DIRECTORY, "notes", root)

        assert exc_info.value.kind is ErrorKind.NAME_CONFLICT
        assert exc_info.value.path == "/notes"

    def test_create_under_file_fails(self, store, root):
        f = store.create(NodeType.FILE, "f", root)
        with pytest.raises(NotADirectoryError):
            store.create(NodeType.FILE, "g", f)

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b"])
    def test_invalid_names(self, name):
        with pytest.raises(InvalidArgumentError):
            validate_name(name)

    def test_symlink_requires_target(self, store, root):
        with pytest.raises(InvalidArgumentError):
            store.create(NodeType.SYMLINK, "l", root)

    def test_symlink_starts_unknown(self, store, root):
        link = store.create(NodeType.SYMLINK, "l", root, target_path="/x")
        assert link.health is LinkHealth.UNKNOWN
        assert link.target_path == "/x"

    def test_alias_shares_inode_and_content(self, store, root):
        """
        Given: A file with content
        When: An alias is created
        Then: Both share inode, content and the link count
        """
        original = store.create(NodeType.FILE, "a", root)
        original.write_at(0, b"hi")
        original.permissions = 4

        alias = store.alias(original, "b", root)

        assert alias.inode == original.inode
        assert alias.content is original.content
        assert alias.permissions == 4
        assert original.link_count == 2

    def test_alias_directory_rejected(self, store, root):
        d = store.create(NodeType.DIRECTORY, "d", root)
        with pytest.raises(IsADirectoryError):
            store.alias(d, "e", root)

    def test_destroy_releases_one_alias(self, store, root):
        original = store.create(NodeType.FILE, "a", root)
        alias = store.alias(original, "b", root)

        root.remove(original)
        store.destroy(original)

        assert original.destroyed
        assert alias.link_count == 1
        assert not alias.content.released

    def test_destroy_non_empty_directory_rejected(self, store, root):
        d = store.create(NodeType.DIRECTORY, "d", root)
        store.create(NodeType.FILE, "f", d)
        root.remove(d)

        with pytest.raises(DirectoryNotEmptyError):
            store.destroy(d)

    def test_destroy_recursive_counts_entries(self, store, root):
        d = store.create(NodeType.DIRECTORY, "d", root)
        sub = store.create(NodeType.DIRECTORY, "sub", d)
        f = store.create(NodeType.FILE, "f", sub)
        root.remove(d)

        assert store.destroy(d, recursive=True) == 3
        assert f.destroyed and sub.destroyed and d.destroyed
        assert f.content.released
