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
"""
Cloud Functions management api.

Each call maps to exactly one request against the v1 api, there is no
polling, caching or retrying here beyond the retry codes handed to the
transport.

https://cloud.google.com/functions/docs/reference/rest/v1/projects.locations.functions
"""
import logging

from gcf_deploy.config import API_VERSION, DEFAULT_REGION
from gcf_deploy.exceptions import DeployError, FunctionDeployError
from gcf_deploy.model import (
    CloudFunction, ListOptions, OperationRecord, OperationType, PatchOptions)

log = logging.getLogger('gcf_deploy.functions')

ERR_DEPLOYMENT_QUOTA_EXCEEDED_MESSAGE = (
    "You have exceeded your deployment quota, please deploy your functions in "
    "batches, and wait a few minutes before deploying again.")

ERR_GENERATE_UPLOAD_URL_FAILURE_MESSAGE = (
    "There was an issue deploying your functions. Verify that your project "
    "has a Google App Engine instance setup at "
    "https://console.cloud.google.com/appengine and try again. If this issue "
    "persists, please contact support.")

MAX_ARCHIVE_SIZE = 104857600


def get_status_code(error):
    """Status code of the http response behind a failed request."""
    code = getattr(error, 'status_code', None)
    if code is None:
        code = getattr(getattr(error, 'response', None), 'status_code', None)
    return code


def make_path(project_id, location_name, function_name=None):
    functions_path = "/{}/projects/{}/locations/{}/functions".format(
        API_VERSION, project_id, location_name)
    if function_name is not None:
        return "{}/{}".format(functions_path, function_name)
    return functions_path


class CloudFunctionManager(object):

    def __init__(self, session, logger=None):
        self.session = session
        self.log = logger or log

    def make_path(self, project_id, location_name, function_name=None):
        return make_path(project_id, location_name, function_name)

    def _failed(self, function_name, operation_type, error):
        """Log a failed function mutation and return the error to raise."""
        self.log.warning(
            "functions: failed to %s function %s", operation_type, function_name)
        if get_status_code(error) == 429:
            self.log.debug(str(error))
            self.log.info(ERR_DEPLOYMENT_QUOTA_EXCEEDED_MESSAGE)
        else:
            self.log.info(str(error))
        return FunctionDeployError(
            "Failed to {} function {}".format(operation_type, function_name),
            original=error,
            context={'function': function_name})

    def generate_upload_url(self, project_id, location_name=DEFAULT_REGION):
        """Returns a signed URL for uploading a function source code.

        https://cloud.google.com/functions/docs/reference/rest/v1/projects.locations.functions/generateUploadUrl
        """
        path = "{}:generateUploadUrl".format(make_path(project_id, location_name))
        try:
            response = self.session.request(
                'POST', path, auth=True, json=False, retry_codes=(503,))
        except Exception:
            self.log.info(ERR_GENERATE_UPLOAD_URL_FAILURE_MESSAGE)
            raise
        return response.body['uploadUrl']

    def upload_archive(self, upload_url, archive):
        """Upload a closed archive to a signed url, returns the url."""
        self.log.debug("uploading function code %s", upload_url)
        with open(archive.path, 'rb') as fh:
            self.session.request(
                'PUT', upload_url, auth=False, json=False, data=fh,
                headers={
                    'content-type': 'application/zip',
                    'Content-Length': '%d' % archive.size,
                    'x-goog-content-length-range': '0,%d' % MAX_ARCHIVE_SIZE})
        self.log.info("function code uploaded")
        return upload_url

    def create(self, target, func):
        """Create a function in the target's location.

        ``func`` is a :py:class:`CloudFunction`, its body is posted as is.
        """
        path = make_path(target.project_id, target.location_name)
        try:
            response = self.session.request(
                'POST', path, auth=True, body=func.get_config())
        except Exception as e:
            raise self._failed(
                target.function_name or func.function_name,
                OperationType.CREATE, e) from e
        return response.body

    def patch(self, target, options):
        """Update the fields of a function named in ``options``.

        ``options`` is a :py:class:`PatchOptions` or a
        :py:class:`CloudFunction` to take them from.
        """
        if isinstance(options, CloudFunction):
            options = PatchOptions.from_function(options)
        func = target.qualified_name
        path = make_path(
            target.project_id, target.location_name, target.function_name)

        data = options.source.get_config()
        data['name'] = func
        data['labels'] = options.labels
        masks = [options.source.mask, 'name', 'labels']

        if options.runtime:
            data['runtime'] = options.runtime
            masks.append('runtime')
        if options.available_memory_mb:
            data['availableMemoryMb'] = options.available_memory_mb
            masks.append('availableMemoryMb')
        if options.timeout:
            data['timeout'] = options.timeout
            masks.append('timeout')

        data.update(options.trigger.get_config())
        masks.extend(options.trigger.get_masks())

        try:
            response = self.session.request(
                'PATCH', path, auth=True, body=data,
                query={'updateMask': ','.join(masks)})
        except Exception as e:
            raise self._failed(
                target.function_name, OperationType.UPDATE, e) from e
        return OperationRecord(func, False, response.body['name'], OperationType.UPDATE)

    def delete(self, target):
        func = target.qualified_name
        path = make_path(
            target.project_id, target.location_name, target.function_name)
        try:
            response = self.session.request('DELETE', path, auth=True)
        except Exception as e:
            raise self._failed(
                target.function_name, OperationType.DELETE, e) from e
        return OperationRecord(func, False, response.body['name'], OperationType.DELETE)

    def list_functions(self, project_id, region=DEFAULT_REGION):
        """List extant cloud functions.

        Each function is annotated with its short ``functionName``.
        """
        if isinstance(project_id, ListOptions):
            project_id, region = project_id
        try:
            response = self.session.request(
                'GET', make_path(project_id, region), auth=True)
        except Exception as e:
            self.log.debug("[functions] failed to list functions for %s", project_id)
            self.log.debug("[functions] %s", e)
            raise DeployError(str(e), original=e) from e

        functions = (response.body or {}).get('functions', [])
        for f in functions:
            f['functionName'] = f['name'][f['name'].rfind('/') + 1:]
        return functions

    def get(self, target):
        """Get the details on a given function, None if it doesn't exist."""
        path = make_path(
            target.project_id, target.location_name, target.function_name)
        try:
            return self.session.request('GET', path, auth=True).body
        except Exception as e:
            if get_status_code(e) == 404:
                return None
            self.log.debug(
                "[functions] failed to get function %s: %s",
                target.function_name, e)
            raise
