"""
Shared FastAPI dependencies.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from geospy.database.session import get_db
from geospy.integrations.config import ExternalAPIClients, ExternalAPIConfig
from geospy.services.geo import GeoService
from geospy.utils.config import get_settings


def get_clients(request: Request) -> ExternalAPIClients:
    """Process-wide API clients created at startup."""
    clients = getattr(request.app.state, "clients", None)
    if clients is None:
        clients = ExternalAPIClients(ExternalAPIConfig.from_settings(get_settings()))
        request.app.state.clients = clients
    return clients


def get_geo_service(
    db: Session = Depends(get_db),
    clients: ExternalAPIClients = Depends(get_clients),
) -> GeoService:
    return GeoService(db, clients, get_settings())
