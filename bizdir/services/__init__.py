"""Services layered on top of the repository."""
from bizdir.services.catalog_service import CatalogService, PlanLimitExceeded
from bizdir.services.checkout_service import CheckoutService
from bizdir.services.dashboard_service import AdminStats, CustomerStats, DashboardService, OwnerStats
from bizdir.services.directory_service import DirectoryService, average_rating

__all__ = [
    "CatalogService",
    "PlanLimitExceeded",
    "CheckoutService",
    "DashboardService",
    "AdminStats",
    "OwnerStats",
    "CustomerStats",
    "DirectoryService",
    "average_rating",
]
