"""
Test cases for file-set resolution.
"""

from commitgate.fileset import FileSetMode, resolve_file_set
from commitgate.repository import take_marker
from conftest import MemoryRepository


def make_repo():
    return MemoryRepository(
        files={
            "manage.py": "import django\n",
            "app/models.py": "class M: pass\n",
            "README.md": "# readme\n",
            "logo.png": "\x89PNG",
        }
    )


class TestAllFiles:
    def test_every_tracked_file(self):
        repo = make_repo()
        file_set = resolve_file_set(FileSetMode.ALL_FILES, repo)

        assert file_set.mode is FileSetMode.ALL_FILES
        assert set(file_set) == {"manage.py", "app/models.py", "README.md", "logo.png"}

    def test_ignores_marker(self):
        repo = make_repo()
        repo.write_marker(take_marker(repo))

        assert len(resolve_file_set(FileSetMode.ALL_FILES, repo)) == 4

    def test_skips_files_deleted_from_worktree(self):
        repo = MemoryRepository(files={"kept.py": "x = 1\n"}, tracked=["kept.py", "gone.py"])
        assert resolve_file_set(FileSetMode.ALL_FILES, repo).files == ("kept.py",)

    def test_duplicate_paths_are_collapsed(self):
        repo = MemoryRepository(files={"a.py": "a\n"}, tracked=["a.py", "a.py"])
        assert resolve_file_set(FileSetMode.ALL_FILES, repo).files == ("a.py",)


class TestChangedOnly:
    def test_without_marker_everything_is_changed(self):
        repo = make_repo()
        assert len(resolve_file_set(FileSetMode.CHANGED_ONLY, repo)) == 4

    def test_unchanged_state_yields_empty_set(self):
        repo = make_repo()
        repo.write_marker(take_marker(repo))

        file_set = resolve_file_set(FileSetMode.CHANGED_ONLY, repo)
        assert file_set.files == ()
        assert len(file_set) == 0

    def test_modified_and_added_files(self):
        repo = make_repo()
        repo.write_marker(take_marker(repo))
        repo.files["manage.py"] = "import django  \n"
        repo.files["app/views.py"] = "def index(request): pass\n"

        assert set(resolve_file_set(FileSetMode.CHANGED_ONLY, repo)) == {"manage.py", "app/views.py"}

    def test_deleted_file_is_not_reported(self):
        repo = make_repo()
        repo.write_marker(take_marker(repo))
        del repo.files["README.md"]

        assert resolve_file_set(FileSetMode.CHANGED_ONLY, repo).files == ()

    def test_does_not_filter_by_file_type(self):
        repo = make_repo()
        repo.write_marker(take_marker(repo))
        repo.files["logo.png"] = "\x89PNG changed"

        assert resolve_file_set(FileSetMode.CHANGED_ONLY, repo).files == ("logo.png",)
