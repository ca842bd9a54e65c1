"""
Domain models for the FixDesk ticket engine.

This package contains the core domain models that represent tickets,
technicians, classification results and notifications.
"""

# Import all models from domain files using wildcard imports
from fixdesk.domains.tickets import *
from fixdesk.domains.technicians import *
from fixdesk.domains.classification import *
from fixdesk.domains.notifications import *
from fixdesk.domains.intake import *
from fixdesk.domains.workload import *
