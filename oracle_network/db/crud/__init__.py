""" This module is used to import all the crud modules in the db """

from .network_events_crud import network_event_crud
from .operational_errors_crud import operational_errors_crud
from .oracles_crud import oracle_crud
from .reward_distribution_crud import reward_distribution_crud
from .round_results_crud import round_result_crud
from .slashings_crud import slashing_crud
