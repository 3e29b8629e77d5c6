"""
Source poller workers.

Importing this package registers every poller with the schedule registry.
"""

from .agency_feeds.cannabis_hemp_poller import CannabisHempPoller
from .agency_feeds.kava_poller import KavaPoller
from .agency_feeds.kratom_poller import KratomPoller
from .agency_feeds.state_regulations_poller import StateRegulationsPoller
from .congress_gov.congress_poller import CongressPoller
from .courtlistener.caselaw_poller import CaselawPoller
from .federal_register.federal_register_poller import FederalRegisterPoller
from .state_legislature.state_legislature_poller import StateLegislaturePoller

__all__ = [
    "CannabisHempPoller",
    "CaselawPoller",
    "CongressPoller",
    "FederalRegisterPoller",
    "KavaPoller",
    "KratomPoller",
    "StateLegislaturePoller",
    "StateRegulationsPoller",
]
