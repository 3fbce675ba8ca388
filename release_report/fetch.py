import logging
import os
import typing

import git
import git.exc

import release_report.ctx
import release_report.gitutil as gitutil
import release_report.markdown as rrmd
import release_report.model as rrm
from release_report.util import Failure

logger = logging.getLogger(__name__)


def _tag_commit(tag: git.TagReference) -> git.Commit:
    try:
        commit = tag.commit # peels annotated tags
    except (ValueError, git.exc.BadName, git.exc.BadObject) as e:
        raise Failure(f'error on resolving revision {tag.path}') from e

    if not isinstance(commit, git.Commit):
        raise Failure(f'error on getting commit object for ref {tag.path}')

    return commit


def resolve_latest_tag(
    tags: typing.Iterable[git.TagReference],
) -> tuple[git.TagReference, git.Commit] | tuple[None, None]:
    '''
    returns the tag (and the commit it points to) w/ the most recent committer-date. If
    multiple tags share the most recent date, the first one (in iteration order) is returned.

    Tags which cannot be resolved to a commit cause a `Failure` to be raised.
    '''
    latest_tag = None
    latest_tag_commit = None

    for tag in tags:
        commit = _tag_commit(tag)

        if latest_tag_commit is None or commit.committed_date > latest_tag_commit.committed_date:
            latest_tag = tag
            latest_tag_commit = commit

    return latest_tag, latest_tag_commit


def resolve_repository_state(
    git_helper: gitutil.GitHelper,
    trunk_branch: str='master',
) -> tuple[rrm.RepositoryState, git.Commit | None]:
    head_commit = git_helper.head_commit()
    latest_tag, latest_tag_commit = resolve_latest_tag(git_helper.iter_tags())

    state = rrm.RepositoryState(
        head_ref=head_commit.hexsha,
        latest_tag_ref=latest_tag.path if latest_tag else None,
        latest_tag_commit_ref=latest_tag_commit.hexsha if latest_tag_commit else None,
        trunk_branch=trunk_branch,
    )

    if latest_tag:
        logger.info(f'latest tag: {latest_tag.name} ({latest_tag_commit.hexsha})')
    else:
        logger.warning(f'no tags found in {git_helper.working_tree_dir}')

    return state, latest_tag_commit


def iter_commits_since_tag(
    git_helper: gitutil.GitHelper,
    repository_state: rrm.RepositoryState,
) -> typing.Iterable[git.Commit]:
    '''
    yields all commits reachable from trunk-branch, but not from the latest tag (newest first).
    If there is no tag, all commits reachable from trunk-branch are yielded.
    '''
    upper_bound = git_helper.trunk_ref(repository_state.trunk_branch)

    if repository_state.has_tag:
        rev = f'{repository_state.latest_tag_ref}..{upper_bound}'
    else:
        rev = upper_bound

    logger.debug(f'collecting commits for {rev=}')
    yield from git_helper.iter_commits(rev)


def iter_changelog_entries(
    commits: typing.Iterable[git.Commit],
    parser: rrm.CommitMessageParser | None=None,
) -> typing.Generator[rrm.ChangelogEntry, None, None]:
    parser = parser or rrm.CommitMessageParser()

    for commit in commits:
        if not (entry := parser.parse(commit.summary)):
            logger.debug(f'skipping {commit.hexsha} - not a changelog-worthy commit')
            continue

        yield entry.with_commit_ref(commit.hexsha)


def collect_changelog(
    git_helper: gitutil.GitHelper,
    repository_state: rrm.RepositoryState,
    cfg: rrmd.ChangelogCollectionCfg | None=None,
) -> rrmd.ChangelogCollection:
    changelog = rrmd.ChangelogCollection(cfg=cfg)
    changelog.extend(
        iter_changelog_entries(
            commits=iter_commits_since_tag(
                git_helper=git_helper,
                repository_state=repository_state,
            ),
        )
    )

    logger.info(f'collected {len(changelog)} changelog entries')
    return changelog


def schema_file_paths(
    file_patches: typing.Iterable[rrm.FilePatch],
    suffix: str='.sql',
) -> list[str]:
    '''
    returns the "from"-side paths of all given patches ending w/ `suffix`, retaining order.
    Patches w/o "from"-side are ignored.
    '''
    return [
        patch.from_path for patch in file_patches
        if patch.from_path and patch.from_path.endswith(suffix)
    ]


def _read_schema_file(
    root_dir: str,
    path: str,
) -> str:
    root_dir = os.path.realpath(root_dir)
    abs_path = os.path.realpath(os.path.join(root_dir, path))

    if os.path.commonpath((root_dir, abs_path)) != root_dir:
        raise Failure(f'schema file {path} is not contained in {root_dir}')

    try:
        # newline='' retains line-endings as present on disk
        with open(abs_path, encoding='utf-8', newline='') as f:
            return f.read()
    except FileNotFoundError as e:
        raise Failure(f'error opening schema change {path}') from e
    except UnicodeDecodeError as e:
        raise Failure(f'error reading schema change {path}') from e


def extract_schema_script(
    file_patches: typing.Iterable[rrm.FilePatch],
    root_dir: str,
    suffix: str='.sql',
) -> str:
    '''
    concatenates the current contents (read from `root_dir`) of all changed files ending w/
    `suffix`, each prefixed w/ a `-- <path>` header.

    Raises `Failure` if any of the files cannot be found (no partial script is returned).
    '''
    parts = []
    for path in schema_file_paths(file_patches=file_patches, suffix=suffix):
        logger.info(f'found schema change: {path}')
        parts.append(f'-- {path}\n')
        parts.append(_read_schema_file(root_dir=root_dir, path=path))
        parts.append('\n\n')

    return ''.join(parts)


def generate_schema_script(
    git_helper: gitutil.GitHelper,
    latest_tag_commit: git.Commit | None,
    suffix: str='.sql',
) -> str:
    if latest_tag_commit is None:
        logger.warning('no tag to compare against - schema script will be empty')
        return ''

    file_patches = git_helper.diff(
        from_commit=git_helper.head_commit(),
        to_commit=latest_tag_commit,
    )

    return extract_schema_script(
        file_patches=file_patches,
        root_dir=git_helper.working_tree_dir,
        suffix=suffix,
    )


def build_release_report(
    git_helper: gitutil.GitHelper,
    cfg: release_report.ctx.ReportCfg | None=None,
    service_name: str | None=None,
) -> rrmd.ReleaseReport:
    cfg = cfg or release_report.ctx.ReportCfg()

    repository_state, latest_tag_commit = resolve_repository_state(
        git_helper=git_helper,
        trunk_branch=cfg.trunk_branch,
    )

    schema_script = generate_schema_script(
        git_helper=git_helper,
        latest_tag_commit=latest_tag_commit,
        suffix=cfg.schema_suffix,
    )

    changelog = collect_changelog(
        git_helper=git_helper,
        repository_state=repository_state,
        cfg=rrmd.ChangelogCollectionCfg(
            scope_filter=cfg.scope_filter,
            ticket_base_url=cfg.ticket_base_url,
        ),
    )

    if not service_name:
        service_name = os.path.basename(os.path.normpath(git_helper.working_tree_dir))

    return rrmd.ReleaseReport(
        service_name=service_name,
        changelog=changelog,
        schema_script=schema_script,
    )
