"""
Pytest Configuration and Fixtures

Provides shared fixtures for all tests including:
- An isolated data directory per test
- Fake job contexts and alert managers
- Job managers with stub jobs
- Sample item templates and locales
"""

from typing import Any, Dict
from unittest.mock import MagicMock

import pytest

from tarkov_data_manager.config.settings import Config
from tarkov_data_manager.jobs.context import JobContext
from tarkov_data_manager.jobs.manager import JobManager
from tarkov_data_manager.jobs.output_cache import OutputCache


# ============================================================
# Environment Fixtures
# ============================================================

@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """
    Points DATA_DIR at a per-test directory.

    Returns:
        The temporary data directory
    """
    monkeypatch.setattr(Config, 'DATA_DIR', tmp_path)
    monkeypatch.delenv('SKIP_JOBS', raising=False)
    monkeypatch.delenv('ENVIRONMENT', raising=False)
    return tmp_path


# ============================================================
# Job Engine Fixtures
# ============================================================

@pytest.fixture
def mock_alert_manager() -> MagicMock:
    """Provides an alert manager that records calls."""
    return MagicMock()


@pytest.fixture
def job_context(mock_alert_manager) -> JobContext:
    """
    Provides a context whose collaborators are all mocks.

    The KV client reports itself disabled unless a test enables it.
    """
    return JobContext(
        tarkov_data=MagicMock(),
        kv=MagicMock(enabled=False),
        store=MagicMock(),
        alert_manager=mock_alert_manager,
    )


@pytest.fixture
def job_manager(job_context, data_dir) -> JobManager:
    """
    Provides an empty job manager writing under the test data directory.
    """
    return JobManager(
        context=job_context,
        output_cache=OutputCache(data_dir=data_dir, kv_client=job_context.kv),
    )


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def bsg_items() -> Dict[str, Dict[str, Any]]:
    """
    Provides a small item template table.

    Returns:
        Templates keyed by id: a rifle with two attachments plus the
        category chain above them
    """
    return {
        'root': {'_id': 'root', '_name': 'Item', '_parent': ''},
        'weapon': {'_id': 'weapon', '_name': 'Weapon', '_parent': 'root'},
        'rifle': {'_id': 'rifle', '_name': 'AssaultRifle', '_parent': 'weapon'},
        'mod': {'_id': 'mod', '_name': 'Mod', '_parent': 'root'},
        'ak': {
            '_id': 'ak',
            '_name': 'weapon_ak',
            '_parent': 'rifle',
            '_props': {
                'Width': 4,
                'Height': 1,
                'Weight': 3.0,
                'Ergonomics': 40,
                'RecoilForceUp': 100,
                'RecoilForceBack': 300,
                'CenterOfImpact': 0.1,
                'BackgroundColor': 'black',
                'Slots': [{'_name': 'mod_stock'}],
            },
        },
        'stock': {
            '_id': 'stock',
            '_name': 'stock',
            '_parent': 'mod',
            '_props': {
                'Weight': 0.5,
                'Ergonomics': 10,
                'Recoil': -20,
                'ExtraSizeRight': 1,
            },
        },
        'mag': {
            '_id': 'mag',
            '_name': 'mag',
            '_parent': 'mod',
            '_props': {
                'Weight': 0.25,
                'Ergonomics': -2,
                'Accuracy': 10,
            },
        },
    }


@pytest.fixture
def locales() -> Dict[str, Dict[str, Any]]:
    """
    Provides English and Russian locale tables.

    The Russian table has no template for the magazine.
    """
    return {
        'en': {
            'templates': {
                'ak': {'Name': 'AK-74N', 'ShortName': 'AK-74N'},
                'stock': {'Name': 'AK stock', 'ShortName': 'Stock'},
                'mag': {'Name': 'AK magazine', 'ShortName': 'Mag'},
                'rifle': {'Name': 'Assault rifle'},
            },
            'preset': {'preset_short': {'Name': 'Short'}},
            'interface': {'Default': 'Default'},
        },
        'ru': {
            'templates': {
                'ak': {'Name': 'АК-74Н', 'ShortName': 'АК-74Н'},
                'stock': {'Name': 'Приклад АК', 'ShortName': 'Приклад'},
            },
            'preset': {'preset_short': {'Name': 'Короткий'}},
            'interface': {'Default': 'Стандарт'},
        },
    }
