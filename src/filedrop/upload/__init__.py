"""
Resilient Upload Subsystem

Delivers local files to a remote storage bucket over an unreliable network:
connectivity probing, bounded exponential-backoff retry around a cascade of
transport strategies, file-type inference and symmetric deletion.

Entry points live in filedrop.upload.orchestrator (UploadOrchestrator) and
filedrop.upload.deletion (DeletionGateway); filedrop.service wires them to
the configured backend.
"""
