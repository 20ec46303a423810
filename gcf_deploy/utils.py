# Copyright 2018 Capital One Services, LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
import json
import logging
import os

import yaml

try:
    from yaml import CSafeLoader as SafeLoader
except ImportError:  # pragma: no cover
    from yaml import SafeLoader

from gcf_deploy.exceptions import ConfigError

log = logging.getLogger('gcf_deploy.utils')

LOG_FORMAT = "%(asctime)s: %(name)s:%(levelname)s %(message)s"


def setup_logging(verbose=False):
    level = verbose and logging.DEBUG or logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('google.auth').setLevel(logging.WARNING)


def load_file(path, format=None, vars=None):
    if format is None:
        format = 'yaml'
        _, ext = os.path.splitext(path)
        if ext[1:] == 'json':
            format = 'json'

    with open(path) as fh:
        contents = fh.read()

    if vars:
        try:
            contents = contents.format(**vars)
        except (IndexError, KeyError) as e:
            raise ConfigError(
                "Failed to substitute variables in {}: {}".format(path, e),
                original=e)

    if format == 'yaml':
        try:
            return yaml_load(contents)
        except yaml.YAMLError as e:
            log.error('Error while loading yaml file %s', path)
            raise ConfigError(
                "Invalid yaml in {}".format(path), original=e)
    elif format == 'json':
        try:
            return loads(contents)
        except ValueError as e:
            log.error('Error while loading json file %s', path)
            raise ConfigError(
                "Invalid json in {}".format(path), original=e)
    raise ConfigError("Unknown file format {}".format(format))


def yaml_load(value):
    return yaml.load(value, Loader=SafeLoader)


def loads(body):
    return json.loads(body)


def type_schema(required=None, **props):
    """jsonschema generation helper

    params:
     - required: list of required properties
     - props: additional key value properties
    """
    s = {
        'type': 'object',
        'additionalProperties': False,
        'properties': {}}
    s['properties'].update(props)
    if required:
        s['required'] = required
    return s


def filter_empty(d):
    """Drop keys whose value is None or an empty container."""
    return {k: v for k, v in d.items() if v not in (None, {}, [], '')}
