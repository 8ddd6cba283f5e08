"""SharePoint HTTP client with retries, hooks and form digests, CSOM XML building and SOAP auth envelopes."""

__version__ = "1.0.0"