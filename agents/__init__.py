"""Pipeline stages: ingest -> enrich -> aggregate/score -> report."""
