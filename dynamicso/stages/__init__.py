"""Pipeline stages: locate, hash, registry check, package, upload, manifest, cleanup.

Each stage exposes a small function API and receives the run's
`PipelineContext` explicitly instead of reaching for process-wide state.
"""
