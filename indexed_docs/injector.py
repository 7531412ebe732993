"""Context injection for indexed documentation.

Queries the store and formats results for injection into assistant
prompts, respecting a token budget.
"""

from typing import List, Optional

from .models import DocSearchResult, PackageIdentity
from .store import IndexedDocsStore


class ContextInjector:
    """Injects relevant documentation context into prompts."""

    def __init__(
        self,
        store: IndexedDocsStore,
        max_context_tokens: int = 2000,
        max_results: int = 5,
    ):
        self.store = store
        self.max_tokens = max_context_tokens
        self.max_results = max_results

        # Approximate tokens per character
        self.chars_per_token = 4

    async def get_relevant_context(
        self,
        query: str,
        scope: Optional[PackageIdentity] = None,
    ) -> str:
        """
        Get relevant documentation context for a query.

        Args:
            query: User query to find relevant docs for
            scope: Restrict to one package (None = all indexed packages)

        Returns:
            Formatted context string for prompt injection
        """
        results = await self.store.search(scope, query, limit=self.max_results)
        return self.format_context(results)

    def format_context(self, results: List[DocSearchResult]) -> str:
        """
        Format search results for prompt injection.

        Results that would push the text past the token budget are
        truncated, and anything after that is dropped.
        """
        if not results:
            return ""

        lines = ["## Relevant Documentation\n"]
        current_chars = len(lines[0])
        max_chars = self.max_tokens * self.chars_per_token

        for result in results:
            entry = result.entry
            header = f"### {entry.qualified_name} ({entry.kind.value}, {result.identity.key})\n"
            if entry.source_url:
                header += f"<{entry.source_url}>\n"

            content = entry.body.strip()
            available = max_chars - current_chars - len(header) - 50
            if len(content) > available:
                content = content[:max(available, 0)] + "..."

            block = f"{header}\n{content}\n\n"
            if current_chars + len(block) > max_chars:
                break

            lines.append(block)
            current_chars += len(block)

        return "".join(lines)
