"""kintone REST API access."""

from kintone_mcp.backend.client import DownloadedFile, KintoneClient, build_auth_headers, encode_query

__all__ = ["DownloadedFile", "KintoneClient", "build_auth_headers", "encode_query"]
