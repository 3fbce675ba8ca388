import os

import git
import pytest


class RepoBuilder:
    '''
    creates commits w/ well-defined committer-dates in a throw-away repository
    '''
    def __init__(self, repo: git.Repo):
        self.repo = repo
        self.actor = git.Actor('release-report', 'release-report@example.com')
        self.timestamp = 1700000000

    def write(self, path: str, contents: str):
        abs_path = os.path.join(self.repo.working_tree_dir, path)
        os.makedirs(os.path.dirname(abs_path), exist_ok=True)
        with open(abs_path, 'w') as f:
            f.write(contents)
        self.repo.index.add([path])

    def remove(self, path: str):
        self.repo.index.remove([path], working_tree=True)

    def commit(self, message: str, timestamp: int | None=None) -> git.Commit:
        if timestamp is None:
            self.timestamp += 60
            timestamp = self.timestamp
        date = f'{timestamp} +0000'
        return self.repo.index.commit(
            message=message,
            author=self.actor,
            committer=self.actor,
            author_date=date,
            commit_date=date,
        )

    def tag(self, name: str, ref=None) -> git.TagReference:
        return self.repo.create_tag(name, ref=ref or self.repo.head.commit)


@pytest.fixture
def git_repo(tmp_path):
    repo_dir = tmp_path / 'my-service'
    repo_dir.mkdir()
    repo = git.Repo.init(repo_dir)

    with repo.config_writer() as cfg:
        cfg.set_value('user', 'name', 'release-report')
        cfg.set_value('user', 'email', 'release-report@example.com')

    return repo


@pytest.fixture
def repo_builder(git_repo):
    return RepoBuilder(repo=git_repo)
