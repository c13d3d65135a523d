"""certsync: replicate Kubernetes TLS secrets to ACM and Incapsula."""

__version__ = "0.3.0"
