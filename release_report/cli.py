#! /usr/bin/env python3
import argparse
import logging
import sys
import tempfile
import time

import release_report.ctx
import release_report.fetch
import release_report.gitutil as gitutil
import release_report.log
from release_report.util import (
    Failure,
    existing_dir,
)

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """ Parses CLI for release-report generation """
    parser = argparse.ArgumentParser(
        description='Generate changelog and schema script between latest tag and trunk branch'
    )
    parser.add_argument(
        'repo_path',
        nargs='?',
        help='path to local git repository (clone target if --repo-url is passed)',
    )
    parser.add_argument('--repo-url', help='clone repository from this url first')
    parser.add_argument(
        '--ssh-private-key-file',
        help='private key to use for cloning (implies ssh-auth)',
    )
    parser.add_argument(
        '--repo-token-file',
        help='file containing "<user>:<token>" to use for cloning (implies http-token-auth)',
    )
    parser.add_argument('--scope', dest='scope_filter', help='only report this scope')
    parser.add_argument('--ticket-base-url', help='base-url of issue-tracker')
    parser.add_argument('--trunk-branch', help='upper bound for commit-range (default: master)')
    parser.add_argument('--schema-suffix', help='suffix of schema files (default: .sql)')
    parser.add_argument('--outdir', help='directory to write release-report to')
    parser.add_argument('--service-name', help='defaults to repository directory name')
    parser.add_argument(
        '--stdout',
        action='store_true',
        help='print release-report instead of writing it to a file',
    )
    parser.add_argument('-v', '--verbose', action='store_true')

    parsed = parser.parse_args(argv)
    if not parsed.repo_path and not parsed.repo_url:
        parser.error('either repo_path or --repo-url must be passed')

    return parsed


def _git_helper(args: argparse.Namespace) -> gitutil.GitHelper:
    if not args.repo_url:
        return gitutil.GitHelper(repo=args.repo_path)

    if args.ssh_private_key_file:
        with open(args.ssh_private_key_file) as f:
            git_cfg = gitutil.GitCfg(
                repo_url=args.repo_url,
                auth=f.read(),
                auth_type=gitutil.AuthType.SSH,
            )
    elif args.repo_token_file:
        with open(args.repo_token_file) as f:
            user, _, token = f.read().strip().partition(':')
        if not token:
            raise Failure(f'expected "<user>:<token>" in {args.repo_token_file}')
        git_cfg = gitutil.GitCfg(
            repo_url=args.repo_url,
            auth=(user, token),
            auth_type=gitutil.AuthType.HTTP_TOKEN,
        )
    else:
        git_cfg = gitutil.GitCfg(repo_url=args.repo_url)

    target_directory = args.repo_path or tempfile.mkdtemp(prefix='release-report-')

    return gitutil.GitHelper.clone_into(
        target_directory=target_directory,
        git_cfg=git_cfg,
    )


def run(args: argparse.Namespace):
    cfg = release_report.ctx.load_config(
        overrides={
            'scope_filter': args.scope_filter,
            'ticket_base_url': args.ticket_base_url,
            'trunk_branch': args.trunk_branch,
            'schema_suffix': args.schema_suffix,
            'outdir': args.outdir,
        },
    )

    git_helper = _git_helper(args)

    report = release_report.fetch.build_release_report(
        git_helper=git_helper,
        cfg=cfg,
        service_name=args.service_name,
    )

    if args.stdout:
        print(report.as_markdown())
        return

    report.write(outdir=existing_dir(cfg.outdir))


def main(argv=None):
    args = parse_args(argv)
    release_report.log.configure_default_logging(
        stdout_level=logging.DEBUG if args.verbose else logging.INFO,
    )

    start = time.monotonic()
    try:
        run(args)
    except (Failure, OSError) as e:
        logger.error(e)
        if e.__cause__:
            logger.error(f'caused by: {e.__cause__}')
        sys.exit(1)

    logger.info(f'generated in {time.monotonic() - start:.2f}s')


if __name__ == '__main__':
    main()
