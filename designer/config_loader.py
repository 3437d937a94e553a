"""
配置加载器：将 YAML 配置文件解析为 Pydantic 模型。
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

from designer.models import WidgetTemplate

logger = logging.getLogger(__name__)


# ── 各部分配置 ──────────────────────────────────────────

class SnapConfig(BaseModel):
    threshold: float = 8.0
    rotation_step: int = 15


class ScriptConfig(BaseModel):
    timeout_ms: int = 1000
    debounce_ms: int = 300


class RenderConfig(BaseModel):
    # 'local' 时区在无法探测时回退到此值
    default_timezone: str = "UTC"
    local_timezone: Optional[str] = None
    fonts_dir: Optional[str] = None
    locale: str = "en-US"


class DrawingConfig(BaseModel):
    brush_size: int = 4
    color: str = "#000000"


class BackendConfig(BaseModel):
    base_url: Optional[str] = None
    timeout: float = 10.0


class DesignerConfig(BaseModel):
    snap: SnapConfig = Field(default_factory=SnapConfig)
    script: ScriptConfig = Field(default_factory=ScriptConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    drawing: DrawingConfig = Field(default_factory=DrawingConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    templates: List[WidgetTemplate] = Field(default_factory=list)


# ── 加载 ──────────────────────────────────────────────

_CONFIG_SEARCH_PATHS = ["designer.yaml", "designer.yml"]


def find_config_root() -> Path:
    """Find the root config file or directory."""
    base = Path(os.getenv("SCREEN_DESIGNER_ROOT", "."))
    config_dir = base / "config"
    if config_dir.is_dir():
        return config_dir

    for p in _CONFIG_SEARCH_PATHS:
        path = base / p
        if path.exists():
            return path

    return base


def deep_merge_dict(base: dict, update: dict) -> dict:
    """Deep merge two dictionaries. Lists are replaced except 'templates', which is appended."""
    for k, v in update.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            base[k] = deep_merge_dict(base[k], v)
        elif k == "templates" and isinstance(v, list) and isinstance(base.get(k), list):
            base[k].extend(v)
        else:
            base[k] = v
    return base


def load_all_yamls(root: Path) -> Dict[str, Any]:
    """Load and merge all YAML files under root (or root itself if it is a file)."""
    combined: Dict[str, Any] = {}

    files: List[Path] = []
    if root.is_file():
        files.append(root)
    elif root.is_dir():
        files.extend(root.glob("**/*.yaml"))
        files.extend(root.glob("**/*.yml"))
        files.sort()

    for f in files:
        try:
            with open(f, "r", encoding="utf-8") as fp:
                content = yaml.safe_load(fp)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"跳过无法读取的配置文件 {f}: {e}")
            continue
        if not isinstance(content, dict):
            continue
        deep_merge_dict(combined, content)

    return combined


def load_config(path: Optional[str | Path] = None) -> DesignerConfig:
    """
    Load and merge configuration from YAML files into a DesignerConfig.
    """
    if path is None:
        path = find_config_root()
    path = Path(path)

    raw = load_all_yamls(path)
    config = DesignerConfig.model_validate(raw)
    logger.debug(f"Loaded config from {path}: {len(config.templates)} inline templates")
    return config
