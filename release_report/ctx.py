# Copyright (c) 2019-2020 SAP SE or an SAP affiliate company. All rights reserved. This file is
# licensed under the Apache Software License, v. 2 except as noted otherwise in the LICENSE file
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import dataclasses
import logging
import os

import dacite
import yaml

import release_report.util

'''
Execution context. Filled upon invocation of cli.py (see `load_config`), read by submodules
'''

logger = logging.getLogger(__name__)

cfg = None # initialised by load_config

CFG_FILE_NAME = '.release-report.cfg'
ENV_PREFIX = 'RELEASE_REPORT_'


@dataclasses.dataclass
class ReportCfg:
    '''
    scope_filter: if set, only changelog entries w/ this scope are reported
    ticket_base_url: base-url of the issue-tracker tickets are linked to
    trunk_branch: upper bound of the commit-range to collect changelog entries from
    schema_suffix: suffix of files whose changes are included in the schema script
    outdir: directory to write the release-report to
    '''
    scope_filter: str | None = None
    ticket_base_url: str = 'https://jira.atlassian.net'
    trunk_branch: str = 'master'
    schema_suffix: str = '.sql'
    outdir: str = '.'


def _none_or_empty(v):
    return v is None or v == '' or v == () or v == []


def merge_cfgs(left: ReportCfg, right: dict) -> ReportCfg:
    left_dict = dataclasses.asdict(left)

    # do not overwrite existing values w/ None
    right_dict = {k: v for k, v in right.items() if not _none_or_empty(v)}

    return _from_dict(release_report.util.merge_dicts(left_dict, right_dict))


def _from_dict(raw: dict) -> ReportCfg:
    try:
        return dacite.from_dict(
            data_class=ReportCfg,
            data=raw,
            config=dacite.Config(strict=True),
        )
    except dacite.DaciteError as e:
        raise release_report.util.Failure(f'invalid configuration: {e}') from e


def _config_from_user_home():
    cfg_file_path = os.path.join(os.path.expanduser('~'), CFG_FILE_NAME)
    if not os.path.isfile(cfg_file_path):
        return None

    logger.debug(f'reading cfg from {cfg_file_path}')
    try:
        raw = release_report.util.parse_yaml_file(cfg_file_path) or {}
    except (yaml.YAMLError, ValueError) as e:
        raise release_report.util.Failure(f'invalid configuration in {cfg_file_path}') from e

    if not isinstance(raw, dict):
        raise release_report.util.Failure(f'expected a mapping in {cfg_file_path}')

    return {k: v for k, v in raw.items() if not _none_or_empty(v)}


def _config_from_env(env=None):
    env = os.environ if env is None else env

    raw = {
        field.name: env.get(f'{ENV_PREFIX}{field.name.upper()}')
        for field in dataclasses.fields(ReportCfg)
    }
    raw = {k: v for k, v in raw.items() if not _none_or_empty(v)}

    return raw or None


def _config_from_overrides(overrides: dict | None):
    if not overrides:
        return None

    raw = {k: v for k, v in overrides.items() if not _none_or_empty(v)}

    return raw or None


def load_config(
    overrides: dict | None=None,
    env=None,
) -> ReportCfg:
    '''
    loads effective configuration. Later sources take precedence; unset (None/empty) values
    never overwrite previously set ones:

    - defaults
    - ~/.release-report.cfg (YAML)
    - environment (RELEASE_REPORT_<FIELD_NAME>)
    - overrides (typically parsed CLI-arguments)
    '''
    global cfg
    effective_cfg = ReportCfg()

    additional_cfgs = (
        _config_from_user_home(),
        _config_from_env(env=env),
        _config_from_overrides(overrides),
    )

    for additional_cfg in additional_cfgs:
        if not additional_cfg:
            continue

        effective_cfg = merge_cfgs(effective_cfg, additional_cfg)

    cfg = effective_cfg
    return cfg
