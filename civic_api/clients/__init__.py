"""HTTP clients for talking to the civic reports API."""
from .reports_client import ApiResult, ClientConfig, ReportsClient

__all__ = ["ApiResult", "ClientConfig", "ReportsClient"]
