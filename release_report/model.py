import dataclasses
import enum
import re
import typing


class CommitType(enum.StrEnum):
    FEATURE = 'feature'
    FEAT = 'feat'
    FIX = 'fix'
    DOCS = 'docs'
    STYLE = 'style'
    REFACTOR = 'refactor'
    TEST = 'test'
    CHORE = 'chore'
    ENHANCE = 'enhance'
    CONFIG = 'config'


class ChangelogBucket(enum.StrEnum):
    FEATURES = 'features'
    FIXES = 'fixes'
    OTHERS = 'others'

    @staticmethod
    def bucket_title(bucket: 'ChangelogBucket') -> str:
        return {
            ChangelogBucket.FEATURES: 'New Features',
            ChangelogBucket.FIXES: 'Bug Fixes',
            ChangelogBucket.OTHERS: 'Others',
        }[bucket]

    @staticmethod
    def bucket_priority(bucket: 'ChangelogBucket') -> int:
        return {
            ChangelogBucket.FEATURES: 0,
            ChangelogBucket.FIXES: 1,
            ChangelogBucket.OTHERS: 2,
        }[bucket]

    @staticmethod
    def from_type(commit_type: str) -> 'ChangelogBucket':
        if commit_type in (CommitType.FEATURE, CommitType.FEAT):
            return ChangelogBucket.FEATURES
        if commit_type == CommitType.FIX:
            return ChangelogBucket.FIXES
        return ChangelogBucket.OTHERS


@dataclasses.dataclass(frozen=True, kw_only=True)
class ChangelogEntry:
    '''
    A changelog-worthy commit, parsed from the commit's subject line.

    type and scope are always lower-cased; scope and ticket are stored w/o their surrounding
    delimiters. commit_ref is the hexsha of the commit the entry was parsed from (if known).
    '''
    type: str
    message: str
    scope: str = ''
    breaking: bool = False
    ticket: str | None = None
    commit_ref: str | None = None

    def __post_init__(self):
        if not self.message:
            raise ValueError('message must not be empty')

    @property
    def bucket(self) -> ChangelogBucket:
        return ChangelogBucket.from_type(self.type)

    def with_commit_ref(self, commit_ref: str) -> typing.Self:
        return dataclasses.replace(self, commit_ref=commit_ref)


@dataclasses.dataclass(frozen=True)
class FilePatch:
    '''
    One changed file as reported by a tree-diff. `from_path` is the path on the "from"-side
    (None if the file does not exist there), `to_path` is the path on the "to"-side.
    '''
    from_path: str | None
    to_path: str | None


@dataclasses.dataclass
class RepositoryState:
    head_ref: str | None = None
    latest_tag_ref: str | None = None
    latest_tag_commit_ref: str | None = None
    trunk_branch: str = 'master'

    @property
    def has_tag(self) -> bool:
        return bool(self.latest_tag_ref)


class CommitMessageParser:
    '''
    Parses commit subjects of the form

        type(scope)!: [TICKET-123] message

    where scope, breaking-marker (!), separator (:), and ticket are optional. The type-token is
    matched case-insensitively, and must be followed by either of `(!:[`, whitespace or the end
    of the subject. Tickets must consist of at least two uppercase letters, a dash, and digits.
    '''
    pattern = re.compile(
        r'^(?P<type>(?i:' + '|'.join(CommitType) + r'))(?=[(!:\[\s]|$)'
        r'(?:\((?P<scope>[^()\r\n]*)\))?'
        r'(?P<breaking>!)?'
        r'(?P<separator>:)?\s*'
        r'(?:\[(?P<ticket>[A-Z][A-Z]+-[0-9]+)\])?\s*'
        r'(?P<message>.*)'
    )

    def parse(self, subject: str) -> ChangelogEntry | None:
        '''
        returns the parsed changelog entry, or None if the given subject does not follow the
        commit-message convention (or if it does not contain a message)
        '''
        subject = subject.strip()
        if not (match := self.pattern.match(subject)):
            return None

        if not (message := match.group('message').strip()):
            return None

        return ChangelogEntry(
            type=match.group('type').lower(),
            scope=(match.group('scope') or '').lower(),
            message=message,
            breaking=match.group('breaking') == '!',
            ticket=match.group('ticket'),
        )


_parser = CommitMessageParser()


def parse_commit_subject(subject: str) -> ChangelogEntry | None:
    return _parser.parse(subject)
