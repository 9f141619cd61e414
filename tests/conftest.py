from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest


def make_case(
    *,
    db: str = "Milvus",
    case_id: int = 5,
    db_name: str | None = None,
    db_label: str | None = None,
    index: str | None = "HNSW",
    qps: float | None = 1000.0,
    serial_latency_p99: float | None = 0.002,
    recall: float | None = 0.95,
    load_duration: float | None = 120.0,
    max_load_count: float | None = None,
    conc_num_list: list[int] | None = None,
    **extra_metrics: Any,
) -> dict[str, Any]:
    """Build one VectorDBBench case result payload."""
    metrics: dict[str, Any] = {
        "qps": qps,
        "serial_latency_p99": serial_latency_p99,
        "recall": recall,
        "load_duration": load_duration,
        "max_load_count": max_load_count,
        **extra_metrics,
    }
    if conc_num_list is not None:
        metrics["conc_num_list"] = conc_num_list
        metrics["conc_qps_list"] = [qps or 0.0 for _ in conc_num_list]
    task_config: dict[str, Any] = {
        "db": db,
        "db_config": {"db_label": db_label} if db_label else {},
        "db_case_config": {"index": index} if index else {},
        "case_config": {"case_id": case_id},
    }
    if db_name:
        task_config["db_name"] = db_name
    return {"metrics": metrics, "task_config": task_config, "label": ":)"}


def write_result(path: Path, cases: list[dict[str, Any]], **fields: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"run_id": "run-1", "task_label": "nightly", "results": cases, **fields}
    path.write_text(json.dumps(payload))
    return path


@pytest.fixture()
def results_dir(tmp_path: Path) -> Path:
    """Two dated result files plus one undated file, in nested folders."""
    root = tmp_path / "results"
    write_result(
        root / "Milvus" / "result_20240512_milvus.json",
        [
            make_case(case_id=2, max_load_count=4_000_000, qps=None, recall=None,
                      serial_latency_p99=None, load_duration=None, index=None),
            make_case(case_id=5, conc_num_list=[10, 50]),
        ],
    )
    write_result(
        root / "PgVector" / "result_20230601_pg.json",
        [make_case(db="PgVector", case_id=5, qps=300.0, serial_latency_p99=0.01, index="IVF")],
    )
    write_result(
        root / "result_custom.json",
        [make_case(db="QdrantCloud", case_id=101, qps=800.0)],
    )
    return root
