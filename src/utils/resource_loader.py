"""리소스 파일(YAML) 로더 유틸리티"""
import os
import yaml
from typing import Any, Dict
from functools import lru_cache

from src.core.logging import logger


def get_resource_path(relative_path: str) -> str:
    """프로젝트 루트 기준 리소스 절대 경로 반환"""
    # src/utils/resource_loader.py -> src/utils -> src -> root
    base_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    return os.path.join(base_dir, "resources", relative_path)


@lru_cache(maxsize=32)
def load_yaml_resource(relative_path: str) -> Dict[str, Any]:
    """YAML 리소스 로드 및 캐싱"""
    path = get_resource_path(relative_path)
    if not os.path.exists(path):
        logger.warning(f"Resource not found: {path}")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load YAML resource {path}: {e}")
        return {}


def load_classification_vocabulary() -> Dict[str, Any]:
    """태그 분류 어휘 로드 (AI/품질/콘텐츠 유형/번역 테이블)"""
    data = load_yaml_resource("classification/tags.yaml")
    quality = data.get("quality_tags", {}) or {}
    hires = data.get("high_resolution", {}) or {}
    return {
        "ai_tags": frozenset(data.get("ai_tags", [])),
        "high_quality_tags": frozenset(quality.get("high", [])),
        "low_quality_tags": frozenset(quality.get("low", [])),
        "content_type_tags": {k: frozenset(v or []) for k, v in (data.get("content_type_tags", {}) or {}).items()},
        "video_extensions": tuple(data.get("video_extensions", [".mp4", ".webm"])),
        "animated_extensions": tuple(data.get("animated_extensions", [".gif"])),
        "high_res_min_width": int(hires.get("min_width", 1920)),
        "high_res_min_height": int(hires.get("min_height", 1080)),
        "translations": dict(data.get("translations", {}) or {}),
        "blacklist_suggestions": list(data.get("blacklist_suggestions", [])),
    }
