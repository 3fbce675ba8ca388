import logging

import pytest

import release_report.log
import release_report.util as util


def test_merge_dicts():
    base = {'a': 1, 'nested': {'b': 2, 'c': 3}}
    other = {'a': 10, 'nested': {'c': 30}}

    assert util.merge_dicts(base, other) == {'a': 10, 'nested': {'b': 2, 'c': 30}}
    # arguments remain unmodified
    assert base == {'a': 1, 'nested': {'b': 2, 'c': 3}}


def test_parse_yaml_file_limits_elements(tmp_path):
    path = tmp_path / 'cfg.yaml'
    path.write_text('\n'.join(f'k{i}: {i}' for i in range(20)))

    assert len(util.parse_yaml_file(path)) == 20

    with pytest.raises(ValueError):
        util.parse_yaml_file(path, max_elements_count=10)


def test_existing_dir(tmp_path):
    assert util.existing_dir(str(tmp_path)) == str(tmp_path)

    with pytest.raises(util.Failure):
        util.existing_dir(str(tmp_path / 'does-not-exist'))


def test_configure_default_logging():
    release_report.log.configure_default_logging(stdout_level=logging.DEBUG)
    release_report.log.configure_default_logging()

    report_handlers = [
        h for h in logging.root.handlers
        if isinstance(h.formatter, release_report.log.ReportFormatter)
    ]
    assert len(report_handlers) == 1
    assert logging.root.level == logging.INFO
    assert logging.getLogger('git').level == logging.WARNING
