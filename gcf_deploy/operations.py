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
import logging

from gcf_deploy.config import API_VERSION
from gcf_deploy.model import Operation

log = logging.getLogger('gcf_deploy.operations')


def operation_name(target):
    if isinstance(target, str):
        return target
    return target.name


class OperationManager(object):
    """Status checks on long running function operations.

    A single request per call, callers decide when to check again.
    """

    def __init__(self, session, logger=None):
        self.session = session
        self.log = logger or log

    def get(self, target):
        """Get the raw operation record.

        ``target`` is an operation name or anything with a ``name``,
        ie. the :py:class:`OperationRecord` returned by patch or delete.
        """
        name = operation_name(target)
        try:
            response = self.session.request(
                'GET', "/{}/{}".format(API_VERSION, name), auth=True)
        except Exception as e:
            self.log.debug("[functions] failed to get status of operation: %s", name)
            self.log.debug("[functions] %s", e)
            raise
        return response.body

    def get_operation(self, target):
        return Operation.from_resource(self.get(target))
