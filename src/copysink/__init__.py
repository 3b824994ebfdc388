"""copysink: batched PostgreSQL COPY sink for streamed text records."""

__version__ = "0.1.0"
