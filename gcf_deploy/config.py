# Copyright 2016 Capital One Services, LLC
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
import os

from jsonschema import Draft4Validator

from gcf_deploy.exceptions import ConfigError
from gcf_deploy.utils import load_file

FUNCTIONS_ORIGIN = 'https://cloudfunctions.googleapis.com'
API_VERSION = 'v1'
DEFAULT_REGION = 'us-central1'


class Config(object):

    schema = {
        'type': 'object',
        'additionalProperties': False,
        'properties': {
            'origin': {'type': 'string'},
            'api_version': {'type': 'string'},
            'region': {'type': 'string'},
            'project_id': {'type': ['string', 'null']},
            'max_attempts': {'type': 'integer', 'minimum': 1},
            'min_delay': {'type': 'number', 'minimum': 0},
            'timeout': {'type': 'number', 'minimum': 0},
        }
    }

    defaults = {
        'origin': FUNCTIONS_ORIGIN,
        'api_version': API_VERSION,
        'region': DEFAULT_REGION,
        'project_id': None,
        'max_attempts': 5,
        'min_delay': 1,
        'timeout': 60,
    }

    def __init__(self, **kw):
        self.__dict__.update(kw)

    def __getattr__(self, k):
        # only consulted for missing attributes
        if k in Config.defaults:
            return Config.defaults[k]
        raise AttributeError(k)

    def get(self, k, default=None):
        return self.__dict__.get(k, default)

    def copy(self, **kw):
        d = dict(self.__dict__)
        d.update(kw)
        return Config(**d)

    def validate(self):
        errors = list(Draft4Validator(self.schema).iter_errors(self.__dict__))
        if errors:
            raise ConfigError(
                "Invalid configuration: {}".format(errors[0].message),
                original=errors[0])
        return self

    @classmethod
    def empty(cls, **kw):
        d = dict(cls.defaults)
        d.update(kw)
        return cls(**d)

    @classmethod
    def from_file(cls, path, **kw):
        data = load_file(path) or {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration file {} must hold a mapping".format(path))
        data.update(kw)
        return cls.empty(**data).validate()

    @classmethod
    def from_env(cls, environ=None, **kw):
        environ = os.environ if environ is None else environ
        d = {}
        if environ.get('GOOGLE_CLOUD_PROJECT'):
            d['project_id'] = environ['GOOGLE_CLOUD_PROJECT']
        if environ.get('CLOUD_FUNCTIONS_URL'):
            d['origin'] = environ['CLOUD_FUNCTIONS_URL']
        if environ.get('FUNCTIONS_REGION'):
            d['region'] = environ['FUNCTIONS_REGION']
        d.update(kw)
        return cls.empty(**d)
