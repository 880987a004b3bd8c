from rental_backoffice.models.activity_log import ActivityLog
from rental_backoffice.models.client import Client
from rental_backoffice.models.payment import Payment
from rental_backoffice.models.rental import Rental

__all__ = ["ActivityLog", "Client", "Payment", "Rental"]
