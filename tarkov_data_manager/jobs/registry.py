"""
The fixed set of jobs known to the scheduler.
"""

from typing import Dict, Optional, Type

from tarkov_data_manager.jobs.base import Job
from tarkov_data_manager.jobs.manager import JobManager
from tarkov_data_manager.jobs.update_game_data import UpdateGameDataJob
from tarkov_data_manager.jobs.update_historical_prices import UpdateHistoricalPricesJob
from tarkov_data_manager.jobs.update_item_cache import UpdateItemCacheJob
from tarkov_data_manager.jobs.update_presets import UpdatePresetsJob
from tarkov_data_manager.jobs.update_quests import UpdateQuestsJob
from tarkov_data_manager.jobs.update_trader_assorts import UpdateTraderAssortsJob
from tarkov_data_manager.jobs.update_trader_prices import UpdateTraderPricesJob
from tarkov_data_manager.jobs.update_traders import UpdateTradersJob

JOB_CLASSES: Dict[str, Type[Job]] = {
    'update-presets': UpdatePresetsJob,
    'update-item-cache': UpdateItemCacheJob,
    'update-historical-prices': UpdateHistoricalPricesJob,
    'update-traders': UpdateTradersJob,
    'update-trader-assorts': UpdateTraderAssortsJob,
    'update-quests': UpdateQuestsJob,
    'update-trader-prices': UpdateTraderPricesJob,
    'update-game-data': UpdateGameDataJob,
}


def build_registry(manager: Optional[JobManager] = None) -> JobManager:
    """Create one instance of every job, attached to ``manager``."""
    manager = manager or JobManager()
    for job_class in JOB_CLASSES.values():
        manager.register(job_class())
    return manager
