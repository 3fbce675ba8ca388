import collections
import dataclasses
import logging
import os
import time
import typing

import release_report.model as rrm

logger = logging.getLogger(__name__)


@dataclasses.dataclass(kw_only=True)
class ChangelogCollectionCfg:
    '''
    scope_filter: if set, only entries w/ exactly this scope are rendered
    ticket_base_url: base-url of issue-tracker; tickets are linked as <base-url>/browse/<ticket>
    '''
    scope_filter: str | None = None
    ticket_base_url: str = ''


class ChangelogCollection:
    '''
    Collects changelog entries (in commit-traversal order) and renders them as markdown, one
    heading + table per scope. Scopes are rendered in order of first appearance.

    Within each table, the n-th row holds the n-th feature, the n-th fix, and the n-th other
    entry of the respective scope. Entries within one column are not re-ordered.
    '''
    def __init__(
        self,
        cfg: ChangelogCollectionCfg | None=None,
    ):
        self.cfg = cfg or ChangelogCollectionCfg()
        self._entries: list[rrm.ChangelogEntry] = []

    def add(self, entry: rrm.ChangelogEntry):
        self._entries.append(entry)

    def extend(self, entries: typing.Iterable[rrm.ChangelogEntry]):
        for entry in entries:
            self.add(entry)

    @property
    def entries(self) -> tuple[rrm.ChangelogEntry, ...]:
        return tuple(self._entries)

    def __len__(self):
        return len(self._entries)

    def _included(self, entry: rrm.ChangelogEntry) -> bool:
        if not (scope_filter := self.cfg.scope_filter):
            return True
        return entry.scope == scope_filter

    def grouped(self) -> dict[str, dict[rrm.ChangelogBucket, list[rrm.ChangelogEntry]]]:
        '''
        returns entries grouped by scope, then by bucket. dict-order reflects order of first
        appearance (scopes); each bucket is always present (possibly empty)
        '''
        groups = collections.defaultdict(lambda: {bucket: [] for bucket in rrm.ChangelogBucket})

        for entry in self._entries:
            if not self._included(entry):
                logger.debug(f'skipping {entry=} (not in {self.cfg.scope_filter=})')
                continue
            groups[entry.scope][entry.bucket].append(entry)

        return dict(groups)

    def _ticket_link(self, ticket: str) -> str:
        base_url = self.cfg.ticket_base_url.rstrip('/')
        return f'([{ticket}]({base_url}/browse/{ticket}))'

    def render_cell(
        self,
        entry: rrm.ChangelogEntry | None,
        bucket: rrm.ChangelogBucket,
    ) -> str:
        if not entry:
            return ''

        if bucket is rrm.ChangelogBucket.OTHERS:
            text = f'{entry.type}: {entry.message}'
        else:
            text = entry.message

        if entry.ticket:
            text = f'{text} {self._ticket_link(entry.ticket)}'

        return text

    def render_table(
        self,
        buckets: dict[rrm.ChangelogBucket, list[rrm.ChangelogEntry]],
    ) -> list[str]:
        columns = sorted(buckets.keys(), key=rrm.ChangelogBucket.bucket_priority)

        lines = [
            '| ' + ' | '.join(
                f'**{rrm.ChangelogBucket.bucket_title(bucket)}**' for bucket in columns
            ) + ' |',
            '| ' + ' | '.join('---' for _ in columns) + ' |',
        ]

        row_count = max(len(entries) for entries in buckets.values())
        for idx in range(row_count):
            cells = []
            for bucket in columns:
                entries = buckets[bucket]
                entry = entries[idx] if idx < len(entries) else None
                cells.append(self.render_cell(entry=entry, bucket=bucket))
            lines.append('| ' + ' | '.join(cells) + ' |')

        return lines

    def render(self) -> str:
        blocks = []
        for scope, buckets in self.grouped().items():
            block_lines = [f'### {scope}', '']
            block_lines.extend(self.render_table(buckets))
            blocks.append('\n'.join(block_lines) + '\n\n\n')

        return ''.join(blocks)

    def as_markdown(self) -> str:
        return self.render()

    def __str__(self):
        return self.render()


@dataclasses.dataclass(kw_only=True)
class ReleaseReport:
    service_name: str
    changelog: ChangelogCollection
    schema_script: str = ''
    schema_language: str = 'sql'

    def as_markdown(self) -> str:
        return (
            f'**Service**: \n* {self.service_name}\n\n'
            f'{self.changelog.render()}'
            '## SQL Scripts\n'
            f'```{self.schema_language}\n'
            f'{self.schema_script}'
            '\n```'
        )

    def fname(self, timestamp: int | None=None) -> str:
        if timestamp is None:
            timestamp = int(time.time())
        return f'CHANGELOG-{timestamp}.md'

    def write(
        self,
        outdir: str,
        timestamp: int | None=None,
    ) -> str:
        path = os.path.join(outdir, self.fname(timestamp=timestamp))
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.as_markdown())

        logger.info(f'wrote release-report to {path}')
        return path
