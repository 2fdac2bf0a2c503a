import base64
import logging
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from lambdasync.common.core.request_context import get_request_id
from lambdasync.devserver.models.aws_v1 import (
    ApiGatewayIdentity,
    APIGatewayProxyEvent,
    ApiGatewayRequestContext,
    CaseInsensitiveHeaders,
)
from lambdasync.devserver.models.request import InboundRequest

logger = logging.getLogger("devserver.event_builder")

# The dev server exposes a single greedy route, like an API with one {proxy+} resource.
PROXY_RESOURCE = "/{proxy+}"

# Media types that travel as text even though they are not text/*.
TEXT_MEDIA_TYPES = frozenset(
    {
        "application/json",
        "application/ld+json",
        "application/javascript",
        "application/ecmascript",
        "application/xml",
        "application/xhtml+xml",
        "application/x-www-form-urlencoded",
        "application/graphql",
        "application/x-yaml",
        "application/yaml",
        "application/x-ndjson",
        "image/svg+xml",
    }
)


def is_binary_content(content_type: str, content_encoding: str = "") -> bool:
    """
    Decide whether a body with these headers must be base64-encoded.

    A missing content type counts as text. Any content coding other than
    identity (gzip, br, ...) makes the payload binary.
    """
    encoding = content_encoding.strip().lower()
    if encoding and encoding != "identity":
        return True

    media_type = content_type.split(";", 1)[0].strip().lower()
    if not media_type:
        return False
    if media_type.startswith("text/"):
        return False
    if media_type in TEXT_MEDIA_TYPES:
        return False
    # Structured syntax suffixes: application/vnd.api+json, application/atom+xml
    if media_type.endswith("+json") or media_type.endswith("+xml"):
        return False
    return True


def _charset(content_type: str) -> str:
    for param in content_type.split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"')
    return "utf-8"


def encode_body(body: bytes, content_type: str, content_encoding: str = "") -> tuple:
    """
    Returns:
        (body_content, is_base64) where body_content is None for an empty body.
    """
    if not body:
        return None, False

    if is_binary_content(content_type, content_encoding):
        return base64.b64encode(body).decode("ascii"), True

    charset = _charset(content_type)
    try:
        return body.decode(charset), False
    except LookupError:
        # Unknown names and bytes-to-bytes codecs such as rot13, base64 or hex.
        logger.warning(f"Charset '{charset}' is not a text encoding, decoding body as utf-8")
    except UnicodeDecodeError:
        pass

    try:
        return body.decode("utf-8"), False
    except UnicodeDecodeError:
        # latin-1 maps every byte, so a text body never fails translation.
        logger.warning(
            "Request body is not valid text for its content type; passing it through as latin-1",
            extra={"content_type": content_type, "size": len(body)},
        )
        return body.decode("latin-1"), False


class EventBuilder(ABC):
    @abstractmethod
    def build(self, request: InboundRequest) -> Dict[str, Any]:
        """
        Build an event dictionary from an InboundRequest.
        """
        pass


class V1ProxyEventBuilder(EventBuilder):
    """API Gateway V1 (REST API) compatible event builder."""

    def __init__(self, stage: str = "dev", account_id: str = "123456789012"):
        self.stage = stage
        self.account_id = account_id

    def build(self, request: InboundRequest, request_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Build an API Gateway Lambda Proxy Integration-compatible event object.

        Every call returns a fresh dict, so handlers may mutate it freely.
        """
        body_content, is_base64 = encode_body(
            request.body,
            request.content_type,
            request.header("content-encoding", "") or "",
        )

        # Query parameters: null when absent, as API Gateway sends them.
        query_params = dict(request.query_params) or None
        multi_query_params = {k: list(v) for k, v in request.multi_query_params.items()} or None

        proxy_path = request.path.lstrip("/")
        path_params = {"proxy": proxy_path} if proxy_path else None
        resource = PROXY_RESOURCE if proxy_path else "/"

        aws_request_id = request_id or get_request_id() or str(uuid.uuid4())
        now = datetime.now(timezone.utc)

        event_model = APIGatewayProxyEvent(
            resource=resource,
            path=request.path,
            httpMethod=request.method.upper(),
            headers=dict(request.headers),
            multiValueHeaders={k: list(v) for k, v in request.multi_headers.items()},
            queryStringParameters=query_params,
            multiValueQueryStringParameters=multi_query_params,
            pathParameters=path_params,
            stageVariables=None,
            requestContext=ApiGatewayRequestContext(
                accountId=self.account_id,
                resourcePath=resource,
                httpMethod=request.method.upper(),
                requestId=aws_request_id,
                extendedRequestId=aws_request_id,
                requestTime=now.strftime("%d/%b/%Y:%H:%M:%S +0000"),
                requestTimeEpoch=int(time.time() * 1000),
                identity=ApiGatewayIdentity(
                    sourceIp=request.source_ip,
                    userAgent=request.user_agent,
                ),
                path=f"/{self.stage}{request.path}",
                stage=self.stage,
                protocol=request.protocol,
            ),
            body=body_content,
            isBase64Encoded=is_base64,
        )

        event = event_model.model_dump()
        event["headers"] = CaseInsensitiveHeaders(event["headers"])
        event["multiValueHeaders"] = CaseInsensitiveHeaders(event["multiValueHeaders"])
        return event
