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

import functools
import os

import yaml


class Failure(RuntimeError, ValueError):
    pass


def existing_dir(path: str):
    path = os.path.abspath(path)
    if not os.path.isdir(path):
        raise Failure(f'not an existing directory: {path}')
    return path


def not_none(value):
    if value is None:
        raise ValueError('must not be None')
    return value


def parse_yaml_file(path, max_elements_count=100000):
    with open(path) as f:
        parsed = yaml.load(f, Loader=yaml.SafeLoader)
        # mitigate yaml bomb
        _count_elements(parsed, max_elements_count=max_elements_count)
        return parsed


def _count_elements(value, count=0, max_elements_count=100000):
    '''
    recursively counts elements contained in the given value. If the amount of encountered
    elements exceeds `max_elements_count`, a `ValueError` is raised.

    Mitigation against "Billion laughs attack" (https://en.wikipedia.org/wiki/Billion_laughs_attack).
    '''
    if count > max_elements_count:
        raise ValueError(f'maximum element count exceeded: {max_elements_count}')

    if isinstance(value, dict):
        for k, v in value.items():
            count = _count_elements(k, count + 1, max_elements_count)
            count = _count_elements(v, count, max_elements_count)
    elif isinstance(value, (list, tuple)):
        for e in value:
            count = _count_elements(e, count + 1, max_elements_count)
    else:
        count += 1

    if count > max_elements_count:
        raise ValueError(f'maximum element count exceeded: {max_elements_count}')

    return count


def merge_dicts(base: dict, *other: dict):
    '''
    merges copies of the given dict instances and returns the merge result.
    The arguments remain unmodified. In case of merge conflicts, values from `other` overwrite
    values from `base`.
    '''
    not_none(base)

    from copy import deepcopy
    from deepmerge import Merger

    merger = Merger([(dict, ['merge'])], ['override'], ['override'])

    return functools.reduce(
        lambda b, o: merger.merge(b, deepcopy(o)),
        [base, *other],
        {},
    )
