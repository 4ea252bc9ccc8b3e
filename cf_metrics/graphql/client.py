"""
GraphQL client implementation.

A thin GraphQL-over-HTTP client: JSON POST through a shared aiohttp session,
errors converted into collector exceptions.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Dict, Optional

import aiohttp

from ..auth import BearerTokenAuth
from ..exceptions import ErrorHandler, ResponseParseError
from .models import GraphQLQuery, GraphQLResult

logger = logging.getLogger(__name__)


class GraphQLClient:
    """
    GraphQL client bound to a single endpoint.

    The client does not own its HTTP session; the caller creates it (with the
    timeout and connection settings it wants) and closes it.

    Example:
        ```python
        client = GraphQLClient(session, "https://api.example.com/graphql", auth)
        result = await client.execute(GraphQLQuery(query="{ viewer { id } }"))
        if not result.has_errors:
            print(result.data["viewer"])
        ```
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        endpoint: str,
        auth: Optional[BearerTokenAuth] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize GraphQL client.

        Args:
            session: Open aiohttp session used for every request
            endpoint: GraphQL endpoint URL
            auth: Optional bearer authentication
            headers: Default headers for requests
            timeout: Session timeout, reported on timeout errors
        """
        self.session = session
        self.endpoint = endpoint
        self.auth = auth
        self.headers = dict(headers or {})
        self.timeout = timeout

    async def execute(self, query: GraphQLQuery) -> GraphQLResult:
        """
        Execute a GraphQL operation.

        Args:
            query: GraphQL query

        Returns:
            GraphQLResult; GraphQL-level errors are reported in ``errors``

        Raises:
            TransportError: On connection failure or timeout
            APIError: On a non-200 HTTP status
            ResponseParseError: If the body is not a JSON object
        """
        headers = self.headers.copy()
        headers["Content-Type"] = "application/json"
        if self.auth:
            headers.update(self.auth.headers())

        start_time = time.time()
        try:
            async with self.session.post(
                self.endpoint, json=query.to_dict(), headers=headers
            ) as response:
                response_text = await response.text()
                status = response.status
                response_headers = dict(response.headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ErrorHandler.from_aiohttp_error(e, self.endpoint, self.timeout) from e
        except UnicodeDecodeError as e:
            raise ResponseParseError(
                f"Response body is not valid text: {e}", self.endpoint
            ) from e
        response_time = time.time() - start_time

        if status != 200:
            raise ErrorHandler.from_status(
                status,
                "GraphQL request failed",
                self.endpoint,
                response_headers,
                response_text,
            )

        try:
            response_data = json.loads(response_text)
        except json.JSONDecodeError as e:
            raise ResponseParseError(
                f"Invalid JSON response: {e}", self.endpoint, response_text
            ) from e

        if not isinstance(response_data, dict):
            raise ResponseParseError(
                "GraphQL response is not a JSON object", self.endpoint, response_text
            )

        errors = response_data.get("errors") or []
        if not isinstance(errors, list):
            errors = [{"message": str(errors)}]
        result = GraphQLResult(
            data=response_data.get("data"),
            errors=errors,
            response_time=response_time,
            status_code=status,
        )

        logger.debug(
            "GraphQL %s answered in %.3fs (errors=%d)",
            query.operation_name or "query",
            response_time,
            len(result.errors),
        )
        return result
