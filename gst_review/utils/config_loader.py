import yaml
import os
from decimal import Decimal
from functools import lru_cache
from typing import Dict, Any, List

from gst_review.core.config import GST_RULES_PATH

def load_yaml_config(file_path: str) -> Dict[str, Any]:
    """
    Safely loads a YAML configuration file.
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing YAML file {file_path}: {e}")

@lru_cache(maxsize=None)
def load_gst_rules(path: str = GST_RULES_PATH) -> Dict[str, Any]:
    """
    Loads gst_rules.yaml. Cached per path; call load_gst_rules.cache_clear()
    after editing the file at runtime.
    """
    return load_yaml_config(path)

def get_gst_rate_bounds(rules: Dict[str, Any] = None) -> tuple:
    rules = rules if rules is not None else load_gst_rules()
    bounds = rules.get("gst_rate", {})
    return Decimal(str(bounds.get("min", 0))), Decimal(str(bounds.get("max", 28)))

def get_standard_slabs(rules: Dict[str, Any] = None) -> List[Decimal]:
    rules = rules if rules is not None else load_gst_rules()
    return [Decimal(str(s)) for s in rules.get("gst_rate", {}).get("standard_slabs", [])]

def get_required_header_fields(rules: Dict[str, Any] = None) -> List[str]:
    rules = rules if rules is not None else load_gst_rules()
    return list(rules.get("required_header_fields", []))

def get_new_line_defaults(rules: Dict[str, Any] = None) -> Dict[str, Any]:
    rules = rules if rules is not None else load_gst_rules()
    return dict(rules.get("new_line_item", {}))

def load_state_master(rules: Dict[str, Any] = None) -> Dict[str, str]:
    """
    Returns: Dict[state_code, state_name]. Codes are kept as two-digit strings
    even if the YAML was hand-edited with bare integers.
    """
    rules = rules if rules is not None else load_gst_rules()
    master = {}
    for code, name in (rules.get("state_codes") or {}).items():
        key = str(code).strip()
        if key.isdigit():
            key = key.zfill(2)
        master[key] = str(name).strip()
    return master
