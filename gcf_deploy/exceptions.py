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


class DeployError(Exception):
    """Deploy Exception Base Class

    Carries the underlying cause as ``original`` and a free form
    ``context`` mapping describing what was being attempted.
    """

    def __init__(self, message, original=None, context=None):
        super(DeployError, self).__init__(message)
        self.message = message
        self.original = original
        self.context = context or {}

    @property
    def status_code(self):
        """Status code of the http response behind this error, if any."""
        response = getattr(self, 'response', None)
        if response is not None:
            return response.status_code
        if isinstance(self.original, DeployError):
            return self.original.status_code
        return None


class ConfigError(DeployError):
    """Invalid configuration
    """


class DescriptorError(DeployError):
    """Invalid cloud function descriptor
    """


class OperationError(DeployError):
    """Malformed long running operation record
    """


class TransportError(DeployError):
    """Network level failure talking to the api
    """


class HttpError(TransportError):
    """Api responded with a non success status code.
    """

    def __init__(self, message, response=None, original=None, context=None):
        super(HttpError, self).__init__(message, original, context)
        self.response = response


class FunctionDeployError(DeployError):
    """Failure creating, updating or deleting a function.
    """
