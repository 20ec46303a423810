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
"""Authenticated http transport for the cloud functions api.

Owns credential resolution, origin resolution and retries on
transient status codes. Everything above this module issues
requests through :py:meth:`Session.request`.
"""
import logging

import google.auth
from google.auth.transport.requests import AuthorizedSession
import requests
from retrying import Retrying

from gcf_deploy.config import Config
from gcf_deploy.exceptions import HttpError, TransportError
from gcf_deploy.utils import loads

log = logging.getLogger('gcf_deploy.client')

CLOUD_PLATFORM_SCOPE = 'https://www.googleapis.com/auth/cloud-platform'


class Response(object):

    def __init__(self, status_code, body=None, headers=None, reason=None):
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}
        self.reason = reason

    def __repr__(self):
        return "<Response %s>" % self.status_code

    @classmethod
    def from_http(cls, resp, json=False):
        content_type = resp.headers.get('content-type', '')
        body = None
        if resp.content:
            body = resp.text
            if 'json' in content_type:
                body = loads(body)
            elif json:
                try:
                    body = loads(body)
                except ValueError:
                    log.debug("non json response body, status:%s", resp.status_code)
        return cls(resp.status_code, body, dict(resp.headers), resp.reason)


def error_message(response):
    """Extract a message from the google api error envelope."""
    body = response.body
    if isinstance(body, dict) and isinstance(body.get('error'), dict):
        message = body['error'].get('message')
        if message:
            return message
    return "HTTP Error: {} {}".format(
        response.status_code, response.reason or '').strip()


class Session(object):
    """Base class for API repository for a specified Cloud API."""

    def __init__(self, project_id=None, credentials=None, origin=None,
                 http=None, config=None):
        self.config = config or Config.empty()
        self.project_id = project_id or self.config.project_id
        self.origin = origin or self.config.origin
        self._credentials = credentials
        self._http = http
        self._sessions = {}

    def get_credentials(self):
        if self._credentials is None:
            self._credentials, project = google.auth.default(
                scopes=[CLOUD_PLATFORM_SCOPE])
            if not self.project_id and project:
                self.project_id = project
        return self._credentials

    def get_default_project(self):
        if not self.project_id:
            self.get_credentials()
        return self.project_id

    def get_http(self, auth=True):
        if self._http is not None:
            return self._http
        if auth not in self._sessions:
            if auth:
                self._sessions[auth] = AuthorizedSession(self.get_credentials())
            else:
                self._sessions[auth] = requests.Session()
        return self._sessions[auth]

    def get_url(self, path, origin=None):
        if path.startswith('https://') or path.startswith('http://'):
            return path
        return (origin or self.origin).rstrip('/') + path

    def request(self, method, path, auth=True, json=True, query=None,
                body=None, data=None, headers=None, origin=None,
                retry_codes=()):
        """Issue a single api request.

        :param json: send ``body`` json encoded and decode the response as
            json. Otherwise only a str or bytes ``body`` is sent.
        :param data: raw payload, takes precedence over ``body``.
        :param retry_codes: status codes retried with exponential backoff.

        Returns a :py:class:`Response`, raises :py:class:`HttpError` on
        a non success status and :py:class:`TransportError` on network
        failures.
        """
        url = self.get_url(path, origin)
        http = self.get_http(auth)
        kw = {'headers': dict(headers or {}), 'timeout': self.config.timeout}
        if query:
            kw['params'] = query
        if data is not None:
            kw['data'] = data
        elif json and body is not None:
            kw['json'] = body
        elif isinstance(body, (str, bytes)):
            kw['data'] = body

        def invoke():
            log.debug("%s %s", method, url)
            try:
                resp = http.request(method, url, **kw)
            except requests.RequestException as e:
                raise TransportError(str(e), original=e)
            response = Response.from_http(resp, json)
            if response.status_code >= 400:
                raise HttpError(error_message(response), response=response)
            return response

        if not retry_codes:
            return invoke()

        def retryable(e):
            retry = isinstance(e, HttpError) and e.status_code in retry_codes
            if retry:
                log.debug("retrying %s %s on status:%s", method, url, e.status_code)
            return retry

        return Retrying(
            retry_on_exception=retryable,
            stop_max_attempt_number=self.config.max_attempts,
            wait_exponential_multiplier=self.config.min_delay * 1000,
            wait_exponential_max=self.config.min_delay * 1000 * 2 ** self.config.max_attempts,
        ).call(invoke)
