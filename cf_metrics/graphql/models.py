"""
Request and result types for GraphQL-over-HTTP calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class GraphQLQuery:
    """A GraphQL document plus the variables it is executed with."""

    query: str
    variables: Dict[str, Any] = field(default_factory=dict)
    operation_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON request body; ``operationName`` only when one is set."""
        body: Dict[str, Any] = {"query": self.query, "variables": dict(self.variables)}
        if self.operation_name:
            body["operationName"] = self.operation_name
        return body


@dataclass
class GraphQLResult:
    """
    Decoded response of a GraphQL call that reached the server.

    A response may carry both partial data and errors.
    """

    data: Optional[Dict[str, Any]] = None
    errors: List[Any] = field(default_factory=list)
    response_time: Optional[float] = None
    status_code: int = 200

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def error_messages(self) -> List[str]:
        messages = []
        for error in self.errors:
            if isinstance(error, dict):
                messages.append(str(error.get("message", "Unknown error")))
            else:
                messages.append(str(error))
        return messages
