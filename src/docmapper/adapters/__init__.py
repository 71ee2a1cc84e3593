"""Engine adapter layer — Pluggable connectors for search engines.

Built-in adapters:
  - opensearch: OpenSearch v2+ (``opensearch-py`` async client)
  - elasticsearch: Elasticsearch v8+ (``elasticsearch`` async client)
  - memory: In-process engine for development and tests

Implement ``EngineAdapter`` to connect your own engine.
"""
