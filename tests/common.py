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
import io
import json
import logging
import os
import shutil
import tempfile
import unittest

import yaml

from gcf_deploy.client import Session
from gcf_deploy.config import Config

PROJECT_ID = 'proj'

DATA_DIR = os.path.join(os.path.dirname(__file__), 'data', 'flights')


class FlightResponse(object):
    """Recorded http response, quacks like requests.Response"""

    def __init__(self, status_code, body=None, headers=None, reason=None):
        self.status_code = status_code
        self.reason = reason
        self.headers = headers or {}
        if body is None:
            self.content = b''
        elif isinstance(body, str):
            self.content = body.encode('utf8')
        else:
            self.content = json.dumps(body).encode('utf8')
            self.headers.setdefault('content-type', 'application/json; charset=UTF-8')

    @property
    def text(self):
        return self.content.decode('utf8')

    def json(self):
        return json.loads(self.text)


class HttpReplay(object):
    """Serves the recorded responses of a test case in order.

    Flight data lives in ``data/flights/<test case>/`` as numbered json
    files, ``{"status": 200, "headers": {}, "body": {}}``. Requests
    issued are kept in ``calls`` for assertions.
    """

    def __init__(self, test_dir):
        self.test_dir = test_dir
        self.calls = []
        self.responses = sorted(
            (f for f in os.listdir(test_dir) if f.endswith('.json')),
            key=lambda f: int(f.split('.', 1)[0]))

    def request(self, method, url, **kw):
        data = kw.get('data')
        if hasattr(data, 'read'):
            kw['data'] = data.read()
        self.calls.append(dict(kw, method=method, url=url))
        if len(self.calls) > len(self.responses):
            raise AssertionError(
                "No flight data left in %s for %s %s" % (self.test_dir, method, url))
        with open(os.path.join(self.test_dir, self.responses[len(self.calls) - 1])) as fh:
            recorded = json.load(fh)
        return FlightResponse(
            recorded['status'], recorded.get('body'),
            dict(recorded.get('headers', {})), recorded.get('reason'))


class BaseTest(unittest.TestCase):

    def replay_flight_data(self, test_case, project_id=PROJECT_ID, **config):
        test_dir = os.path.join(DATA_DIR, test_case)
        if not os.path.exists(test_dir):
            raise RuntimeError("Invalid Test Dir for flight data %s" % test_dir)
        self.http = HttpReplay(test_dir)
        config.setdefault('min_delay', 0)
        return Session(
            project_id=project_id, credentials=object(), http=self.http,
            config=Config.empty(**config))

    def write_config_file(self, data, format="yaml"):
        fh = tempfile.NamedTemporaryFile(mode="w+", suffix="." + format)
        if format == "json":
            fh.write(json.dumps(data))
        else:
            fh.write(yaml.dump(data, Dumper=yaml.SafeDumper))
        fh.flush()
        self.addCleanup(fh.close)
        return fh.name

    def get_temp_dir(self):
        """ Return a temporary directory that will get cleaned up. """
        temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, temp_dir)
        return temp_dir

    def patch(self, obj, attr, new):
        old = getattr(obj, attr, None)
        setattr(obj, attr, new)
        self.addCleanup(setattr, obj, attr, old)

    def capture_logging(self, name=None, level=logging.DEBUG, formatter=None):
        log_file = io.StringIO()
        log_handler = logging.StreamHandler(log_file)
        log_handler.setFormatter(formatter or logging.Formatter("%(levelname)s %(message)s"))
        logger = logging.getLogger(name)
        logger.addHandler(log_handler)
        old_logger_level = logger.level
        logger.setLevel(level)

        @self.addCleanup
        def reset_logging():
            logger.removeHandler(log_handler)
            logger.setLevel(old_logger_level)

        return log_file
