"""
update-quests: quests with the trader offers they unlock.
"""

from typing import Any, Dict, List

from tarkov_data_manager.etl.normalize import normalize_name
from tarkov_data_manager.etl.translations import get_translations
from tarkov_data_manager.jobs.base import Job


def offer_unlocks(rewards: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Assortment unlock rewards of one reward stage."""
    unlocks = []
    for reward in rewards or []:
        if reward.get('type') != 'AssortmentUnlock':
            continue
        parts = reward.get('items', [])
        if not parts:
            continue
        unlock = {
            'id': reward.get('id'),
            'trader_id': reward.get('traderId'),
            'level': reward.get('loyaltyLevel', 1),
            'item': parts[0]['_tpl'],
            'count': parts[0].get('upd', {}).get('StackObjectsCount', 1),
        }
        if len(parts) > 1:
            unlock['base_item_id'] = parts[0]['_tpl']
            unlock['contains'] = [part['_tpl'] for part in parts[1:]]
        unlocks.append(unlock)
    return unlocks


class UpdateQuestsJob(Job):
    name = 'update-quests'
    kv_name = 'quests'
    write_folder = 'cache'

    async def run(self, options: Dict[str, Any]) -> Dict[str, Any]:
        tarkov_data = self.context.tarkov_data
        quests_raw = await self.blocking(tarkov_data.quests)
        locales = await self.blocking(tarkov_data.locales)

        tasks = []
        for quest_id, quest in quests_raw.items():
            locale = get_translations({'name': ('quest', quest_id, 'name')}, locales, self.logger)
            name = locale.get('en', {}).get('name', quest.get('QuestName', quest_id))
            rewards = quest.get('rewards', {})
            tasks.append({
                'id': quest_id,
                'tarkovDataId': quest.get('tarkovDataId'),
                'name': name,
                'normalizedName': normalize_name(name),
                'trader': quest.get('traderId'),
                'location': quest.get('location'),
                'startRewards': {'offerUnlock': offer_unlocks(rewards.get('Started'))},
                'finishRewards': {'offerUnlock': offer_unlocks(rewards.get('Success'))},
                'locale': locale,
            })
        self.logger.log(f"Processed {len(tasks)} quests")
        return {'Task': tasks}
