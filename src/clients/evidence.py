"""Evidence-Lookup Gateway.

Looks up unstructured activity-log evidence (code reviews, incident notes,
design docs) for candidates. The vector store behind it is not wired up yet,
so the default gateway echoes what it was asked to search; a real
implementation only has to satisfy EvidenceGatewayProtocol.
"""

import asyncio
import json
from typing import Protocol, runtime_checkable


@runtime_checkable
class EvidenceGatewayProtocol(Protocol):
    """Contract for evidence lookup implementations."""

    async def search(
        self,
        candidate_ids: list[str],
        query_keywords: list[str],
        top_k: int = 5,
    ) -> str:
        """Search evidence for candidates.

        Args:
            candidate_ids: Employee ids from the Fact-Finder stage
            query_keywords: Technical-depth and soft-skill keywords
            top_k: Maximum snippets per candidate

        Returns:
            JSON-encoded object describing the search and its results
        """
        ...


class StubEvidenceGateway:
    """Stand-in evidence gateway that returns no snippets."""

    async def search(
        self,
        candidate_ids: list[str],
        query_keywords: list[str],
        top_k: int = 5,
    ) -> str:
        # Keep the coroutine contract of the real vector search
        await asyncio.sleep(0)

        return json.dumps(
            {
                "status": "stub",
                "message": "Vector search is not connected; no evidence snippets available.",
                "candidate_ids": list(candidate_ids),
                "query_keywords": list(query_keywords),
                "top_k": top_k,
                "results": [],
            },
            ensure_ascii=False,
        )
