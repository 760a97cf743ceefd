"""Plant dataset loading utilities (YAML metadata + CSV tables)."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, TypeVar, cast

import pandas as pd
import yaml
from pydantic import TypeAdapter, ValidationError

from oeekit.contract.models import (
    DEFAULT_SHIFTS,
    CostConfig,
    MachineSpec,
    PlantConfig,
    PlantDataset,
    ShiftRecord,
    StoppageRecord,
)
from oeekit.core.errors import InvalidRecordError
from oeekit.validation.records import RecordIssue, validate_labels

__all__ = ["load_plant", "read_csv", "decode_label_list", "parse_plant_config"]

RecordT = TypeVar("RecordT", ShiftRecord, StoppageRecord)

_COST_KEYS = (
    "stop_cost_per_minute",
    "defect_cost_per_unit",
    "production_value_per_unit",
    "oee_goal",
)


def read_csv(path: Path, *, id_columns: tuple[str, ...] = ()) -> pd.DataFrame:
    """Load a CSV file using pandas with UTF-8 defaults.

    ``id_columns`` are kept as text so numeric-looking identifiers stay strings.
    """
    df = pd.read_csv(path)
    for column in id_columns:
        if column in df.columns:
            df[column] = df[column].astype(str)
    return df


def _as_optional_string(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if pd.isna(cast("Any", value)):
        return None
    return str(value)


def _drop_blank_fields(rows: list[dict[str, object]], fields: tuple[str, ...]) -> None:
    for row in rows:
        for name in fields:
            if name not in row:
                continue
            value = row[name]
            if isinstance(value, bool):
                continue
            normalised = _as_optional_string(value)
            if normalised is None:
                row.pop(name)
            else:
                row[name] = normalised


def decode_label_list(value: object) -> tuple[str, ...]:
    """Decode a label set stored as a YAML list, JSON text or a ``|``/``,`` separated string.

    Persisted configuration often keeps list-valued settings as encoded text
    (``'["MORNING", "NIGHT"]'``); the engine only ever sees the decoded tuple.
    """

    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(item).strip() for item in value if str(item).strip())
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return ()
        if stripped.startswith("["):
            try:
                decoded = json.loads(stripped)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Malformed label list: {stripped!r}") from exc
            if not isinstance(decoded, list):
                raise ValueError(f"Label list must decode to a list: {stripped!r}")
            return decode_label_list(decoded)
        parts = re.split(r"[|,]", stripped)
        return tuple(part.strip() for part in parts if part.strip())
    raise ValueError(f"Unsupported label list value: {value!r}")


def parse_plant_config(section: dict[str, object] | None) -> PlantConfig:
    """Build a :class:`PlantConfig` from the ``config`` section of ``plant.yaml``."""

    section = dict(section or {})
    cost_payload = {key: section[key] for key in _COST_KEYS if section.get(key) is not None}
    shifts = decode_label_list(section.get("shifts")) if "shifts" in section else DEFAULT_SHIFTS
    return PlantConfig(
        cost=CostConfig(**cost_payload),
        shifts=shifts,
        stop_reasons=decode_label_list(section.get("stop_reasons")),
    )


def _describe_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        message = str(error["msg"]).removeprefix("Value error, ")
        location = ".".join(str(part) for part in error["loc"])
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def _validate_rows(
    model: type[RecordT],
    rows: list[dict[str, object]],
    *,
    kind: str,
    source: str,
    issues: list[RecordIssue] | None,
) -> list[RecordT]:
    records: list[RecordT] = []
    for index, row in enumerate(rows, start=1):
        try:
            records.append(model.model_validate(row))
        except ValidationError as exc:
            reason = f"{source} row {index}: {_describe_errors(exc)}"
            if issues is None:
                raise InvalidRecordError(row, reason) from exc
            issues.append(RecordIssue(kind=kind, record=row, reason=reason, row=index))
    return records


def load_plant(
    yaml_path: str | Path, *, issues: list[RecordIssue] | None = None
) -> PlantDataset:
    """Load a plant dataset from the YAML metadata + CSV bundle.

    Parameters
    ----------
    yaml_path:
        Path to the ``plant.yaml`` file that references the component CSVs.
    issues:
        Optional list collecting production/stoppage rows that fail validation. Those
        rows are left out of the dataset. Without it the first bad row raises
        :class:`~oeekit.core.errors.InvalidRecordError`.

    Returns
    -------
    PlantDataset
        Validated machines, production/stoppage records and plant configuration.

    Notes
    -----
    * ``machines`` is required; ``production`` and ``stoppages`` default to empty.
    * Blank optional text columns (``name``, ``area``, ``observations``) become ``None``.
    * ``shifts`` and ``stop_reasons`` may be YAML lists or JSON-encoded text.
    * Labels outside the configured sets are reported as ``[plant:<name>]`` warnings but
      do not block loading.
    """

    base_path = Path(yaml_path).resolve()
    with base_path.open("r", encoding="utf-8") as handle:
        meta = yaml.safe_load(handle) or {}
    root = base_path.parent
    data_section = meta.get("data", {})

    def require(name: str) -> Path:
        if name not in data_section:
            raise KeyError(f"plant.yaml data section is missing '{name}'")
        candidate = root / data_section[name]
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        return candidate

    machine_df = read_csv(require("machines"), id_columns=("id",))
    machine_rows = cast(list[dict[str, object]], machine_df.to_dict("records"))
    _drop_blank_fields(machine_rows, ("name", "area", "active"))
    machines = TypeAdapter(list[MachineSpec]).validate_python(machine_rows)

    production: list[ShiftRecord] = []
    if "production" in data_section:
        production_path = require("production")
        production_df = read_csv(production_path, id_columns=("machine_id", "shift"))
        production = _validate_rows(
            ShiftRecord,
            cast(list[dict[str, object]], production_df.to_dict("records")),
            kind="production",
            source=production_path.name,
            issues=issues,
        )

    stoppages: list[StoppageRecord] = []
    if "stoppages" in data_section:
        stoppage_path = require("stoppages")
        stoppage_df = read_csv(stoppage_path, id_columns=("machine_id",))
        stoppage_rows = cast(list[dict[str, object]], stoppage_df.to_dict("records"))
        _drop_blank_fields(stoppage_rows, ("observations",))
        stoppages = _validate_rows(
            StoppageRecord,
            stoppage_rows,
            kind="stoppage",
            source=stoppage_path.name,
            issues=issues,
        )

    config = parse_plant_config(meta.get("config"))
    dataset = PlantDataset(
        name=str(meta.get("name") or base_path.parent.name),
        machines=machines,
        production=production,
        stoppages=stoppages,
        config=config,
    )
    _emit_label_warnings(dataset)
    return dataset


def _emit_label_warnings(dataset: PlantDataset) -> None:
    for msg in validate_labels(dataset.production, dataset.stoppages, dataset.config):
        print(f"[plant:{dataset.name}] {msg}")
