"""Shared fixtures for SATD miner tests."""

from pathlib import Path
from typing import Dict, Optional

import git
import pytest


class RepoBuilder:
    """Writes files and commits them in a throw-away repository."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.repo = git.Repo.init(path)
        self.repo.config_writer().set_value("user", "name", "Test User").release()
        self.repo.config_writer().set_value("user", "email", "test@example.com").release()

    def commit(self, files: Dict[str, Optional[str]], message: str) -> str:
        """Write (or delete, for None) files and commit them.

        Returns:
            The new commit hash
        """
        for rel_path, content in files.items():
            target = self.path / rel_path
            if content is None:
                self.repo.index.remove([rel_path], working_tree=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
            self.repo.index.add([rel_path])
        return self.repo.index.commit(message).hexsha


@pytest.fixture
def repo_builder(tmp_path):
    """Create an empty Git repository with a configured user."""
    return RepoBuilder(tmp_path / "repo")
