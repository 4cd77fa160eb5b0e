"""
YAML 설정 로드

config/ 아래 파일들을 하나의 dict로 합칩니다. 최상위 키가 겹치면 뒤 파일이 우선합니다.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).parent.parent / "config"
CONFIG_FILES = ("database.yaml", "scheduler.yaml", "admin.yaml")


def load_config(config_dir: str | Path | None = None) -> dict[str, Any]:
    """
    설정 파일 로드

    Args:
        config_dir: 설정 디렉토리 (None이면 프로젝트 루트의 config/)

    Returns:
        database.yaml / scheduler.yaml / admin.yaml을 합친 설정 (없는 파일은 건너뜀)
    """
    config_path = Path(config_dir) if config_dir else CONFIG_DIR
    config: dict[str, Any] = {}

    for file_name in CONFIG_FILES:
        file_path = config_path / file_name
        if not file_path.exists():
            logger.debug(f"Config file not found, skipping: {file_path}")
            continue

        with open(file_path, encoding="utf-8") as f:
            config.update(yaml.safe_load(f) or {})

    return config
