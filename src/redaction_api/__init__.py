"""HTTP API for the PDF PII redaction service."""
