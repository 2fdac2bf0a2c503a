# lambdasync/devserver/models/aws_v1.py

"""
Pydantic models for AWS API Gateway v1 (REST API) event structure.

Reference: https://docs.aws.amazon.com/apigateway/latest/developerguide/set-up-lambda-proxy-integrations.html#api-gateway-simple-proxy-for-lambda-input-format

This module provides Pydantic models to build API Gateway Lambda Proxy Integration
event structures in a type-safe manner.
"""

from typing import Dict, Optional, List
from pydantic import BaseModel


class ApiGatewayIdentity(BaseModel):
    """API Gateway Identity object."""

    sourceIp: str
    userAgent: Optional[str] = None


class ApiGatewayRequestContext(BaseModel):
    """API Gateway Request Context object."""

    accountId: str
    apiId: str = "local"
    resourceId: str = "local"
    resourcePath: str
    httpMethod: str
    requestId: str
    extendedRequestId: Optional[str] = None
    requestTime: str
    requestTimeEpoch: int
    identity: ApiGatewayIdentity
    stage: str = "dev"
    path: Optional[str] = None
    protocol: str = "HTTP/1.1"


class APIGatewayProxyEvent(BaseModel):
    """
    AWS API Gateway Proxy Integration (v1) Event Structure

    Defines the structure of the event object received by Lambda functions.
    Nullable fields are dumped as null, matching what API Gateway sends.
    """

    resource: str
    path: str
    httpMethod: str
    headers: Dict[str, str]
    multiValueHeaders: Dict[str, List[str]]
    queryStringParameters: Optional[Dict[str, str]] = None
    multiValueQueryStringParameters: Optional[Dict[str, List[str]]] = None
    pathParameters: Optional[Dict[str, str]] = None
    stageVariables: Optional[Dict[str, str]] = None
    requestContext: ApiGatewayRequestContext
    body: Optional[str] = None
    isBase64Encoded: bool = False


class CaseInsensitiveHeaders(dict):
    """
    Header dict whose lookups ignore case, as HTTP header names do.

    Keys keep the casing they arrived with, and the mapping is still a plain
    ``dict`` to ``json.dumps`` and ``isinstance`` checks.
    """

    def __init__(self, *args, **kwargs):
        super().__init__()
        self.update(*args, **kwargs)

    def _resolve(self, key):
        if super().__contains__(key) or not isinstance(key, str):
            return key
        lowered = key.lower()
        for existing in self.keys():
            if isinstance(existing, str) and existing.lower() == lowered:
                return existing
        return key

    def __getitem__(self, key):
        return super().__getitem__(self._resolve(key))

    def __setitem__(self, key, value):
        super().__setitem__(self._resolve(key), value)

    def __delitem__(self, key):
        super().__delitem__(self._resolve(key))

    def __contains__(self, key):
        return super().__contains__(self._resolve(key))

    def get(self, key, default=None):
        return super().get(self._resolve(key), default)

    def pop(self, key, *default):
        return super().pop(self._resolve(key), *default)

    def setdefault(self, key, default=None):
        return super().setdefault(self._resolve(key), default)

    def update(self, *args, **kwargs):
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def copy(self):
        return type(self)(self)
