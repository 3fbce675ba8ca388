# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0


import dataclasses
import enum
import logging
import os
import tempfile
import urllib.parse

import git
import git.exc

import release_report.model as rrm
from release_report.util import Failure

logger = logging.getLogger(__name__)


class AuthType(enum.StrEnum):
    '''
    SSH: credentials for use via SSH (typically a RSA-key w/ no explicit username)
    HTTP_TOKEN: (username, token)-tuple, passed as part of the (https-)url
    PRESET: assume effective git-config (or ssh-agent) contains needed cfg
    '''
    SSH = 'ssh'
    HTTP_TOKEN = 'http-token'
    PRESET = 'preset'


@dataclasses.dataclass(kw_only=True)
class GitCfg:
    '''
    Configuration for cloning a remote git-repository. Only needed if the repository to create
    the release-report for is not yet present locally.

    It is left to the user to ensure repo_url matches the auth_type (e.g. if auth_type is SSH,
    repo_url *must* have ssh-scheme)

    repo_url: url to clone from
    auth: private key (SSH), or (user, token)-tuple (HTTP_TOKEN)
    auth_type: type of auth
    '''
    repo_url: str | None = None
    auth: str | tuple[str, str] | None = None
    auth_type: AuthType = AuthType.PRESET


def _ssh_auth_env(git_cfg: GitCfg):
    credentials = git_cfg.auth
    logger.info(f'using ssh-credentials for {git_cfg.repo_url=}')

    tmp_id = tempfile.NamedTemporaryFile(mode='w', delete=False) # noqa; callers must unlink
    tmp_id.write(credentials)
    tmp_id.flush()
    tmp_id.close()

    os.chmod(tmp_id.name, 0o400)
    suppress_hostcheck = '-o "StrictHostKeyChecking no"'
    id_only = '-o "IdentitiesOnly yes"'
    cmd_env = os.environ.copy()
    cmd_env['GIT_SSH_COMMAND'] = f'ssh -i {tmp_id.name} {suppress_hostcheck} {id_only}'
    return (cmd_env, tmp_id)


class GitHelper:
    def __init__(
        self,
        repo,
        git_cfg: GitCfg | None=None,
    ):
        if repo is None:
            raise ValueError(repo)
        if isinstance(repo, (str, os.PathLike)):
            try:
                repo = git.Repo(repo)
            except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
                raise Failure(f'error opening git repository on path {repo}') from e
        if not isinstance(repo, git.Repo):
            raise ValueError(repo)

        self.repo = repo
        self.git_cfg = git_cfg or GitCfg()

    @staticmethod
    def clone_into(
        target_directory: str,
        git_cfg: GitCfg,
        checkout_branch: str = None,
    ) -> 'GitHelper':
        if not git_cfg.repo_url:
            raise ValueError('repo-url must not be None')

        auth_type = git_cfg.auth_type
        if auth_type is AuthType.SSH:
            cmd_env, tmp_id = _ssh_auth_env(git_cfg=git_cfg)
            url = git_cfg.repo_url
        elif auth_type is AuthType.HTTP_TOKEN:
            url = _url_with_credentials(git_cfg)
        elif auth_type is AuthType.PRESET:
            url = git_cfg.repo_url
        else:
            raise NotImplementedError

        args = ['--quiet']
        if checkout_branch is not None:
            args += ['--branch', checkout_branch]
        args += [url, target_directory]

        logger.info(f'cloning {git_cfg.repo_url} into {target_directory}')
        repo = git.Git()
        try:
            if auth_type is AuthType.SSH:
                with repo.custom_environment(**cmd_env):
                    repo.clone(*args)
            else:
                repo.clone(*args)
        except git.exc.GitCommandError as e:
            raise Failure(f'error cloning git repository {git_cfg.repo_url}') from e
        finally:
            if auth_type is AuthType.SSH:
                os.unlink(tmp_id.name)

        return GitHelper(
            repo=git.Repo(target_directory),
            git_cfg=git_cfg,
        )

    @property
    def working_tree_dir(self) -> str:
        return self.repo.working_tree_dir

    def head_commit(self) -> git.Commit:
        try:
            return self.repo.head.commit
        except ValueError as e:
            raise Failure(f'error getting head of {self.working_tree_dir}') from e

    def iter_tags(self):
        '''
        yields all tag-references of the underlying repository, in the order git lists them
        '''
        yield from self.repo.tags

    def has_branch(self, name: str) -> bool:
        return name in self.repo.heads

    def trunk_ref(self, trunk_branch: str) -> str:
        '''
        returns the ref to use as upper bound for commit-ranges. Falls back to HEAD if the
        given trunk-branch does not exist locally.
        '''
        if self.has_branch(trunk_branch):
            return trunk_branch

        logger.warning(f'{trunk_branch=} does not exist in {self.working_tree_dir} - using HEAD')
        return 'HEAD'

    def iter_commits(self, rev: str):
        try:
            yield from self.repo.iter_commits(rev)
        except git.exc.GitCommandError as e:
            raise Failure(f'error getting git log for {rev=}') from e

    def diff(
        self,
        from_commit: git.Commit,
        to_commit: git.Commit,
    ) -> list[rrm.FilePatch]:
        '''
        returns the changed files between the trees of the two given commits, in the order git
        reports them. The "from"-side of each patch refers to `from_commit`.
        '''
        try:
            diff_index = from_commit.diff(to_commit)
        except git.exc.GitCommandError as e:
            raise Failure(
                f'error getting changes between {from_commit.hexsha} and {to_commit.hexsha}'
            ) from e

        return [
            rrm.FilePatch(
                from_path=None if d.new_file else d.a_path,
                to_path=None if d.deleted_file else d.b_path,
            )
            for d in diff_index
        ]


def _url_with_credentials(
    git_cfg: GitCfg,
):
    if git_cfg.auth_type is AuthType.PRESET:
        return git_cfg.repo_url
    elif git_cfg.auth_type is AuthType.SSH:
        raise ValueError('auth-url cannot be created for auth-type SSH')
    elif git_cfg.auth_type is AuthType.HTTP_TOKEN:
        pass # ok to proceed
    else:
        raise ValueError(f'not implemented: {git_cfg.auth_type=}')

    base_url = urllib.parse.urlparse(git_cfg.repo_url)
    scheme = base_url.scheme or 'https'

    user, secret = git_cfg.auth
    credentials_str = f'{user}:{secret}'

    url = f'{scheme}://{credentials_str}@{base_url.netloc}{base_url.path}'
    return url
