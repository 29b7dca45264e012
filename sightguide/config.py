import json
import yaml
from pathlib import Path
from copy import deepcopy
from typing import Dict

_DEFAULTS = {
    "camera": {
        "source": 0,
        "width": 1280,
        "height": 720,
        "fps_request": 30,
        "backend": "auto",
        "rotation_deg": 0,
    },
    "detect": {
        "enabled": True,
        "backend": "onnx",
        "model": "models/yolov8n.onnx",
        "labels": "configs/labels_en.json",
        "providers": ["CPUExecutionProvider"],
        "intra_op_threads": 2,
        "inter_op_threads": 1,
        "input_size": 640,
        "num_classes": 80,
        "conf_thres": 0.25,
        "iou_thres": 0.45,
        "normalized_max": 1.5,
        "max_det": 100,
        "classes_keep": [],
    },
    "geometry": {
        "vertical_fov_deg": 60.0,
        "default_height_m": 0.50,
        "min_distance_m": 0.05,
        "max_distance_m": 20.0,
        "heights": {},
    },
    "runtime": {
        "throttle": {
            "interval_ms": 250,
        },
        "output": {
            "queue_size": 2,
        },
    },
    "speech": {
        "backend": "log",
        "rate": 180,
        "relevance": {
            "manual_top_k": 4,
            "auto_top_k": 3,
            "global_interval_s": 2.5,
            "label_cooldown_s": 8.0,
        },
        "guidance": {
            "update_interval_s": 0.9,
            "not_found_interval_s": 2.5,
            "arrival_distance_m": 0.25,
            "close_distance_m": 0.6,
        },
        "synonyms": {},
    },
    "filters": {
        "hide_unknown": False,
    },
    "vis": {
        "draw": {
            "det": True,
            "thickness": 2,
            "font_scale": 0.6,
        },
    },
}

# 粗略的典型高度（米），仅用于单目距离估计
DEFAULT_HEIGHTS_M: Dict[str, float] = {
    "person": 1.70,
    "chair": 0.90,
    "couch": 0.90,
    "bed": 0.55,
    "dining table": 0.75,
    "tv": 0.60,
    "laptop": 0.25,
    "cell phone": 0.15,
    "bottle": 0.28,
    "cup": 0.08,
    "book": 0.24,
}


def _merge(a: dict, b: dict):
    """merge b into a (recursive)"""
    out = deepcopy(a)
    for k, v in (b or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def _project_root():
    # 以当前文件所在目录往上找 project 根
    here = Path(__file__).resolve()
    for p in [here, *here.parents]:
        if (p / "configs").exists():
            return p
    return Path.cwd()


def resolve_config_path(path: str | None = None) -> Path:
    """Resolve configuration file path relative to project root."""
    root = _project_root()
    if path:
        cfg_path = Path(path)
        if not cfg_path.is_absolute():
            cfg_path = root / cfg_path
    else:
        cfg_path = root / "configs" / "default.yaml"
    return cfg_path


def default_config() -> dict:
    return deepcopy(_DEFAULTS)


def load_config(path: str | None = None) -> dict:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")

    with open(cfg_path, "r", encoding="utf-8") as f:
        user_cfg = yaml.safe_load(f) or {}

    # 把 None 的分支替换成空 dict，避免 .get() 崩
    def _none_to_dict(x):
        if x is None: return {}
        if isinstance(x, dict):
            return {k: _none_to_dict(v) for k, v in x.items()}
        return x
    user_cfg = _none_to_dict(user_cfg)

    return _merge(_DEFAULTS, user_cfg)


def load_labels(path: str | Path | None) -> Dict[int, str]:
    """Read the class-index table: JSON object keyed by string-encoded ints."""
    labels_path = resolve_config_path(str(path) if path else "configs/labels_en.json")
    if not labels_path.exists():
        raise FileNotFoundError(f"Labels file not found: {labels_path}")
    with open(labels_path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"Labels file must hold a JSON object: {labels_path}")
    labels: Dict[int, str] = {}
    for k, v in raw.items():
        try:
            labels[int(k)] = str(v)
        except (TypeError, ValueError):
            continue
    return labels


def height_table(geom_cfg: dict) -> Dict[str, float]:
    table = dict(DEFAULT_HEIGHTS_M)
    for label, meters in (geom_cfg.get("heights") or {}).items():
        table[str(label)] = float(meters)
    return table
