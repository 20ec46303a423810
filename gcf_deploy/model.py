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
Cloud function resource model.

A function carries exactly one source code variant and exactly one
trigger variant, each modeled as its own class so that a descriptor
can never hold two of them at once.

https://cloud.google.com/functions/docs/reference/rest/v1/projects.locations.functions#resource-cloudfunction
"""
from collections import namedtuple

from jsonschema import Draft4Validator

from gcf_deploy.config import DEFAULT_REGION
from gcf_deploy.exceptions import DescriptorError, OperationError
from gcf_deploy.utils import filter_empty, type_schema


class Target(namedtuple('Target', ('project_id', 'location_name', 'function_name'))):
    """Identifies a function, or the function collection of a location."""

    __slots__ = ()

    def __new__(cls, project_id, location_name=DEFAULT_REGION, function_name=None):
        return super(Target, cls).__new__(
            cls, project_id, location_name, function_name)

    @property
    def location(self):
        return "projects/{}/locations/{}".format(
            self.project_id, self.location_name)

    @property
    def qualified_name(self):
        if not self.function_name:
            raise DescriptorError("Target has no function name")
        return "{}/functions/{}".format(self.location, self.function_name)


ListOptions = namedtuple('ListOptions', ('project_id', 'region'))


# Source code variants

class SourceCode(object):

    __slots__ = ()
    mask = None

    def get_config(self):
        raise NotImplementedError("subclass responsibility")

    @staticmethod
    def from_resource(resource):
        if resource.get('sourceArchiveUrl'):
            return SourceArchive(resource['sourceArchiveUrl'])
        if resource.get('sourceRepository'):
            repo = resource['sourceRepository']
            return SourceRepository(repo.get('url'), repo.get('deployedUrl'))
        if resource.get('sourceUploadUrl'):
            return SourceUpload(resource['sourceUploadUrl'])
        raise DescriptorError(
            "Function {} has no source code".format(resource.get('name')))


class SourceArchive(namedtuple('SourceArchive', ('url',)), SourceCode):
    """Zip archive in cloud storage, ``gs://bucket/object.zip``"""

    __slots__ = ()
    mask = 'sourceArchiveUrl'

    def get_config(self):
        return {self.mask: self.url}


class SourceRepository(namedtuple('SourceRepository', ('url', 'deployed_url')), SourceCode):

    __slots__ = ()
    mask = 'sourceRepository'

    def __new__(cls, url, deployed_url=None):
        return super(SourceRepository, cls).__new__(cls, url, deployed_url)

    def get_config(self):
        # deployedUrl is output only
        return {self.mask: {'url': self.url}}


class SourceUpload(namedtuple('SourceUpload', ('url',)), SourceCode):
    """Signed url obtained from generateUploadUrl"""

    __slots__ = ()
    mask = 'sourceUploadUrl'

    def get_config(self):
        return {self.mask: self.url}


# Trigger variants

class Trigger(object):

    __slots__ = ()

    def get_config(self):
        raise NotImplementedError("subclass responsibility")

    def get_masks(self):
        raise NotImplementedError("subclass responsibility")

    @staticmethod
    def from_resource(resource):
        if 'eventTrigger' in resource:
            return EventTrigger.from_resource(resource['eventTrigger'])
        if 'httpsTrigger' in resource:
            return HttpsTrigger(resource['httpsTrigger'].get('url'))
        raise DescriptorError(
            "Function {} has no trigger".format(resource.get('name')))


class HttpsTrigger(namedtuple('HttpsTrigger', ('url',)), Trigger):

    __slots__ = ()

    def __new__(cls, url=None):
        return super(HttpsTrigger, cls).__new__(cls, url)

    def get_config(self):
        # url is assigned by the service
        return {'httpsTrigger': {}}

    def get_masks(self):
        return ['httpsTrigger']


class FailurePolicy(namedtuple('FailurePolicy', ('retry',))):

    __slots__ = ()

    def __new__(cls, retry=True):
        return super(FailurePolicy, cls).__new__(cls, retry)

    def get_config(self):
        if self.retry:
            return {'retry': {}}
        return {}


class EventTrigger(namedtuple(
        'EventTrigger', ('event_type', 'resource', 'service', 'failure_policy')), Trigger):

    __slots__ = ()

    def __new__(cls, event_type, resource, service=None, failure_policy=None):
        return super(EventTrigger, cls).__new__(
            cls, event_type, resource, service, failure_policy)

    @classmethod
    def from_resource(cls, data):
        policy = data.get('failurePolicy')
        return cls(
            data.get('eventType'),
            data.get('resource'),
            data.get('service'),
            FailurePolicy('retry' in policy) if policy is not None else None)

    def get_config(self):
        config = {'eventType': self.event_type, 'resource': self.resource}
        if self.service:
            config['service'] = self.service
        if self.failure_policy is not None:
            config['failurePolicy'] = self.failure_policy.get_config()
        return {'eventTrigger': config}

    def get_masks(self):
        return ['eventTrigger.%s' % k for k in self.get_config()['eventTrigger']]


# Functions

string = {'type': 'string'}
string_map = {'type': 'object', 'additionalProperties': {'type': 'string'}}


class CloudFunction(object):

    STATUS_VALUES = (
        'CLOUD_FUNCTION_STATUS_UNSPECIFIED',
        'ACTIVE',
        'OFFLINE',
        'DEPLOY_IN_PROGRESS',
        'DELETE_IN_PROGRESS',
        'UNKNOWN')

    schema = type_schema(
        required=['name'],
        name={'type': 'string', 'minLength': 1},
        description=string,
        entryPoint=string,
        runtime=string,
        timeout={'type': 'string', 'pattern': r'^\d+(\.\d+)?s$'},
        availableMemoryMb={'type': 'integer', 'minimum': 1},
        serviceAccountEmail=string,
        labels=string_map,
        environmentVariables=string_map,
        network=string,
        maxInstances={'type': 'integer', 'minimum': 0},
        vpcConnector=string,
        sourceArchiveUrl=string,
        sourceUploadUrl=string,
        sourceRepository={
            'type': 'object',
            'required': ['url'],
            'properties': {'url': string}},
        httpsTrigger={'type': 'object'},
        eventTrigger={
            'type': 'object',
            'required': ['eventType', 'resource'],
            'additionalProperties': False,
            'properties': {
                'eventType': string,
                'resource': string,
                'service': string,
                'failurePolicy': {
                    'type': 'object',
                    'properties': {'retry': {'type': 'object'}}}}})
    schema['allOf'] = [
        {'oneOf': [
            {'required': ['sourceArchiveUrl']},
            {'required': ['sourceRepository']},
            {'required': ['sourceUploadUrl']}]},
        {'oneOf': [
            {'required': ['httpsTrigger']},
            {'required': ['eventTrigger']}]}]

    def __init__(self, name, source, trigger, description=None,
                 entry_point=None, runtime=None, timeout=None,
                 available_memory_mb=None, service_account_email=None,
                 labels=None, environment_variables=None, network=None,
                 max_instances=None, vpc_connector=None,
                 status=None, update_time=None, version_id=None):
        if not isinstance(source, SourceCode):
            raise DescriptorError(
                "Function {} requires one source code variant, got {!r}".format(
                    name, source))
        if not isinstance(trigger, Trigger):
            raise DescriptorError(
                "Function {} requires one trigger variant, got {!r}".format(
                    name, trigger))
        self.name = name
        self.source = source
        self.trigger = trigger
        self.description = description
        self.entry_point = entry_point
        self.runtime = runtime
        self.timeout = timeout
        self.available_memory_mb = available_memory_mb
        self.service_account_email = service_account_email
        self.labels = dict(labels or {})
        self.environment_variables = dict(environment_variables or {})
        self.network = network
        self.max_instances = max_instances
        self.vpc_connector = vpc_connector
        # output only
        self.status = status
        self.update_time = update_time
        self.version_id = version_id

    def __repr__(self):
        return "<CloudFunction %s>" % self.name

    @property
    def function_name(self):
        return self.name.rsplit('/', 1)[-1]

    @classmethod
    def from_resource(cls, resource):
        return cls(
            resource['name'],
            SourceCode.from_resource(resource),
            Trigger.from_resource(resource),
            description=resource.get('description'),
            entry_point=resource.get('entryPoint'),
            runtime=resource.get('runtime'),
            timeout=resource.get('timeout'),
            available_memory_mb=resource.get('availableMemoryMb'),
            service_account_email=resource.get('serviceAccountEmail'),
            labels=resource.get('labels'),
            environment_variables=resource.get('environmentVariables'),
            network=resource.get('network'),
            max_instances=resource.get('maxInstances'),
            vpc_connector=resource.get('vpcConnector'),
            status=resource.get('status'),
            update_time=resource.get('updateTime'),
            version_id=resource.get('versionId'))

    def get_config(self):
        conf = filter_empty({
            'name': self.name,
            'description': self.description,
            'entryPoint': self.entry_point,
            'runtime': self.runtime,
            'timeout': self.timeout,
            'availableMemoryMb': self.available_memory_mb,
            'serviceAccountEmail': self.service_account_email,
            'labels': self.labels,
            'environmentVariables': self.environment_variables,
            'network': self.network,
            'maxInstances': self.max_instances,
            'vpcConnector': self.vpc_connector})
        conf.update(self.source.get_config())
        conf.update(self.trigger.get_config())
        return conf

    def validate(self):
        validate_config(self.get_config())
        return self


def validate_config(config):
    """Validate a rendered function body, raises DescriptorError."""
    errors = list(Draft4Validator(CloudFunction.schema).iter_errors(config))
    if errors:
        error = errors[0]
        path = '.'.join(str(p) for p in error.path)
        raise DescriptorError(
            "Invalid function {}: {}{}".format(
                config.get('name'), path and path + ': ' or '', error.message),
            original=error)


class PatchOptions(namedtuple('PatchOptions', (
        'source', 'trigger', 'labels', 'runtime', 'available_memory_mb', 'timeout'))):
    """Fields a patch call intends to change.

    ``source`` may be a plain url, which is taken as an upload url.
    """

    __slots__ = ()

    def __new__(cls, source, trigger, labels=None, runtime=None,
                available_memory_mb=None, timeout=None):
        if not isinstance(source, SourceCode):
            source = SourceUpload(source)
        if not isinstance(trigger, Trigger):
            raise DescriptorError(
                "Patch requires one trigger variant, got {!r}".format(trigger))
        return super(PatchOptions, cls).__new__(
            cls, source, trigger, dict(labels or {}), runtime,
            available_memory_mb, timeout)

    @classmethod
    def from_function(cls, func):
        return cls(
            func.source, func.trigger, func.labels, func.runtime,
            func.available_memory_mb, func.timeout)


# Operations

class OperationType(object):

    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'


class OperationRecord(namedtuple('OperationRecord', ('func', 'done', 'name', 'type'))):
    """Handle on an operation started by a patch or delete."""

    __slots__ = ()

    def as_dict(self):
        return dict(self._asdict())


Status = namedtuple('Status', ('code', 'message', 'details'))


class Operation(object):
    """Long running operation.

    Once done exactly one of ``response`` or ``error`` is set, before
    that neither is meaningful and both are None.
    """

    def __init__(self, name, done=False, metadata=None, response=None, error=None):
        if done and (response is None) == (error is None):
            raise OperationError(
                "Completed operation {} must carry exactly one of "
                "response or error".format(name))
        self.name = name
        self.done = bool(done)
        self.metadata = dict(metadata or {})
        self.response = response if done else None
        self.error = error if done else None

    def __repr__(self):
        return "<Operation %s done:%s>" % (self.name, self.done)

    @classmethod
    def from_resource(cls, resource):
        error = resource.get('error')
        if error is not None:
            error = Status(
                error.get('code'), error.get('message'), error.get('details', []))
        return cls(
            resource['name'],
            resource.get('done', False),
            resource.get('metadata'),
            resource.get('response'),
            error)

    @property
    def succeeded(self):
        return self.done and self.error is None

    @property
    def failed(self):
        return self.done and self.error is not None
