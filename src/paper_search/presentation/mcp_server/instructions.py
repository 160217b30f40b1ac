"""
MCP Server Instructions - usage guide for AI agents.
"""

from __future__ import annotations

SERVER_INSTRUCTIONS = """
Paper Search MCP Server - scholarly paper search for AI agents

═══════════════════════════════════════════════════════════════════════════════
🎯 Choosing a tool
═══════════════════════════════════════════════════════════════════════════════

## 1️⃣ Find papers anywhere: search_papers
───────────────────────────────────────────────────────────────────────────────
Queries every enabled source concurrently, removes duplicates and ranks by
citation count (then year). Sources that fail are skipped.

```
search_papers(query="holographic entanglement entropy", max_results=10)
search_papers(query="dark matter halos", sources="arxiv,inspire")
```
Call list_sources() to see which sources are enabled.

## 2️⃣ Look up one paper: get_paper, get_citations, get_references
───────────────────────────────────────────────────────────────────────────────
Ids carry a source prefix: arxiv:, inspire:, s2:, ads:, doi:, pmid:, doaj:,
vixra:, openalex:. The prefix picks the source; pass source= to override.

## 3️⃣ Build a local collection: index_paper, index_from_query
───────────────────────────────────────────────────────────────────────────────
```
index_paper(paper_id="arxiv:2301.00001")
index_from_query(query="quantum error correction", max_results=20)
```
Re-indexing an id replaces the stored record. delete_paper removes one.

## 4️⃣ Search the local collection: search_local, search_similar
───────────────────────────────────────────────────────────────────────────────
search_local modes:
- lexical: BM25 keyword search. Syntax: "exact phrase", AND / OR / NOT,
  +required, -excluded, title:..., abstract:..., authors:..., year:2020,
  year:[2015 TO 2020]
- vector: semantic nearest neighbours of the query text
- hybrid (default): both lists fused with Reciprocal Rank Fusion

search_similar(text=...) finds indexed papers close to any passage, e.g. an
abstract you are reading.

index_stats() reports collection size and configuration.

═══════════════════════════════════════════════════════════════════════════════
⚠️ Errors
═══════════════════════════════════════════════════════════════════════════════
Failures come back as a message starting with ❌ and usually include a
💡 suggestion. A malformed lexical query reports the problem position.
"""
