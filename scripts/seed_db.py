from __future__ import annotations

import importlib

from unihub.config import get_settings_module
from unihub.database.bootstrap import ensure_demo_users, ensure_reference_data


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    ensure_reference_data(db_config)
    ensure_demo_users(db_config)

    print(
        "OK: Seeded roles, permissions and demo users -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )


if __name__ == "__main__":
    main()
