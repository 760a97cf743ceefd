"""Dataset input/output helpers."""

from .loaders import decode_label_list, load_plant, parse_plant_config, read_csv

__all__ = ["load_plant", "read_csv", "decode_label_list", "parse_plant_config"]
