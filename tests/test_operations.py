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
from gcf_deploy.exceptions import HttpError, OperationError
from gcf_deploy.model import Operation, OperationRecord
from gcf_deploy.operations import OperationManager

from common import BaseTest

OPERATIONS = 'https://cloudfunctions.googleapis.com/v1/operations/'


class OperationManagerTest(BaseTest):

    def test_get_done_operation(self):
        manager = OperationManager(self.replay_flight_data('operation-done'))
        record = OperationRecord(
            'projects/proj/locations/us-central1/functions/foo', False,
            'operations/cHJvai91cy1jZW50cmFsMS9mb28vdXBk', 'update')
        result = manager.get(record)

        self.assertEqual(self.http.calls[0]['method'], 'GET')
        self.assertEqual(
            self.http.calls[0]['url'], OPERATIONS + 'cHJvai91cy1jZW50cmFsMS9mb28vdXBk')
        self.assertTrue(result['done'])
        self.assertEqual(result['response']['status'], 'ACTIVE')

    def test_get_operation_by_name(self):
        manager = OperationManager(self.replay_flight_data('operation-done'))
        op = manager.get_operation('operations/cHJvai91cy1jZW50cmFsMS9mb28vdXBk')
        self.assertTrue(op.done)
        self.assertTrue(op.succeeded)
        self.assertFalse(op.failed)
        self.assertEqual(op.metadata['type'], 'UPDATE_FUNCTION')

    def test_get_failed_operation(self):
        manager = OperationManager(self.replay_flight_data('operation-failed'))
        op = manager.get_operation('operations/cHJvai91cy1jZW50cmFsMS9mb28vYWJj')
        self.assertTrue(op.failed)
        self.assertIsNone(op.response)
        self.assertEqual(op.error.code, 3)
        self.assertEqual(op.error.message, 'Function failed on loading user code.')

    def test_get_pending_operation(self):
        manager = OperationManager(self.replay_flight_data('operation-pending'))
        op = manager.get_operation('operations/cHJvai91cy1jZW50cmFsMS9mb28vZGVs')
        self.assertFalse(op.done)
        self.assertFalse(op.succeeded)
        self.assertFalse(op.failed)
        self.assertIsNone(op.response)
        self.assertIsNone(op.error)

    def test_get_operation_error_reraised(self):
        log_output = self.capture_logging('gcf_deploy.operations')
        original = HttpError("Operation operations/bogus does not exist")

        class Failing(object):
            def request(self, *args, **kw):
                raise original

        manager = OperationManager(Failing())
        with self.assertRaises(HttpError) as ecm:
            manager.get('operations/bogus')

        self.assertIs(ecm.exception, original)
        self.assertEqual(
            log_output.getvalue().splitlines(),
            ['DEBUG [functions] failed to get status of operation: operations/bogus',
             'DEBUG [functions] Operation operations/bogus does not exist'])

    def test_get_operation_not_found(self):
        manager = OperationManager(self.replay_flight_data('operation-not-found'))
        with self.assertRaises(HttpError) as ecm:
            manager.get('operations/bogus')
        self.assertEqual(ecm.exception.status_code, 404)


class OperationTest(BaseTest):

    def test_done_requires_result(self):
        self.assertRaises(OperationError, Operation, 'operations/abc', True)

    def test_done_rejects_both(self):
        self.assertRaises(
            OperationError, Operation, 'operations/abc', True,
            response={'name': 'x'}, error={'code': 3})

    def test_done_empty_response(self):
        op = Operation('operations/abc', True, response={})
        self.assertEqual(op.response, {})
        self.assertTrue(op.succeeded)

    def test_pending_ignores_result(self):
        op = Operation.from_resource({
            'name': 'operations/abc', 'done': False, 'response': {'name': 'x'}})
        self.assertIsNone(op.response)
        self.assertEqual(op.metadata, {})
