"""Tests for result file parsing, directory loading and result sources."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import make_case, write_result

from vdbbench_dashboard.records.results import (
    Metric,
    ResultFile,
    TaskConfig,
    iter_result_files,
    load_result_file,
    load_result_files,
)
from vdbbench_dashboard.sources import (
    RESULT_PATTERNS,
    HFResultsSource,
    LocalResultsSource,
    resolve_source_root,
)


class TestParsing:
    def test_metric_splits_known_and_extra_fields(self) -> None:
        m = Metric.from_dict(
            {"qps": 10, "recall": 0.9, "conc_num_list": [1, 5], "st_ideal_insert_duration": 3}
        )
        assert m.qps == 10
        assert m.recall == 0.9
        assert m.serial_latency_p99 is None
        assert m.conc_num_list == (1, 5)
        assert m.conc_qps_list is None
        assert m.extra == {"st_ideal_insert_duration": 3}

    def test_metric_drops_non_numeric_values(self) -> None:
        m = Metric.from_dict({"qps": "fast", "recall": True, "conc_num_list": [1, "x", 2]})
        assert m.qps is None
        assert m.recall is None
        assert m.conc_num_list == (1, 2)

    def test_task_config_fields(self) -> None:
        cfg = TaskConfig.from_dict(
            {
                "db": "Milvus",
                "db_name": "Milvus-prod",
                "db_config": {"db_label": "2c8g"},
                "db_case_config": {"index": "HNSW", "M": 16},
                "case_config": {
                    "case_id": "5",
                    "concurrency_search_config": {
                        "num_concurrency": [1, 10],
                        "concurrency_duration": 30,
                    },
                },
            }
        )
        assert cfg.case_id == 5
        assert cfg.index == "HNSW"
        assert cfg.db_label == "2c8g"
        assert cfg.display_db_name == "Milvus-prod"
        assert cfg.num_concurrency == (1, 10)
        assert cfg.concurrency_duration == 30.0

    def test_task_config_display_name_falls_back_to_db(self) -> None:
        cfg = TaskConfig.from_dict({"db": "Redis", "case_config": {"case_id": 1}})
        assert cfg.display_db_name == "Redis"
        assert cfg.index is None
        assert cfg.db_label is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"case_config": {"case_id": 1}},
            {"db": "Milvus", "case_config": {}},
            {"db": "Milvus", "case_config": {"case_id": "five"}},
            {"db": "Milvus", "case_config": {"case_id": True}},
            {"db": "Milvus", "case_config": [1]},
        ],
    )
    def test_task_config_rejects_malformed(self, payload: dict[str, object]) -> None:
        with pytest.raises(ValueError):
            TaskConfig.from_dict(payload)

    def test_result_file_requires_results_list(self) -> None:
        with pytest.raises(ValueError, match="results"):
            ResultFile.from_dict({"run_id": "x", "results": {}})
        with pytest.raises(ValueError, match="JSON object"):
            ResultFile.from_dict([1, 2])


class TestLoadResultFile:
    def test_attaches_provenance(self, tmp_path: Path) -> None:
        path = write_result(tmp_path / "result_20240512_run.json", [make_case()], timestamp=1.7e9)
        loaded = load_result_file(path)
        assert loaded.filename == "result_20240512_run.json"
        assert loaded.file_date == date(2024, 5, 12)
        assert loaded.run_id == "run-1"
        assert loaded.task_label == "nightly"
        assert loaded.timestamp == 1.7e9
        assert len(loaded.results) == 1

    def test_undated_filename(self, tmp_path: Path) -> None:
        path = write_result(tmp_path / "result_custom.json", [make_case()])
        assert load_result_file(path).file_date is None

    def test_invalid_json_raises_value_error(self, tmp_path: Path) -> None:
        path = tmp_path / "result_20240101_broken.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            load_result_file(path)


class TestLoadResultFiles:
    def test_recursive_sorted_discovery(self, results_dir: Path) -> None:
        (results_dir / "notes.json").write_text("{}")
        (results_dir / "result_backup.json.bak").write_text("{}")
        names = [p.name for p in iter_result_files(results_dir)]
        assert names == [
            "result_20240512_milvus.json",
            "result_20230601_pg.json",
            "result_custom.json",
        ]

    def test_loads_every_file(self, results_dir: Path) -> None:
        results = load_result_files(results_dir)
        assert [r.filename for r in results] == [
            "result_20240512_milvus.json",
            "result_20230601_pg.json",
            "result_custom.json",
        ]
        assert sum(len(r.results) for r in results) == 4

    def test_worker_count_does_not_change_order(self, results_dir: Path) -> None:
        serial = load_result_files(results_dir, n_workers=1)
        threaded = load_result_files(results_dir, n_workers=8)
        assert serial == threaded

    def test_skips_malformed_file(self, results_dir: Path, caplog: pytest.LogCaptureFixture) -> None:
        (results_dir / "result_20240601_broken.json").write_text("{oops")
        write_result(results_dir / "result_20240602_nodb.json", [{"metrics": {}, "task_config": {}}])
        with caplog.at_level("WARNING"):
            results = load_result_files(results_dir)
        assert len(results) == 3
        assert "result_20240601_broken.json" in caplog.text
        assert "result_20240602_nodb.json" in caplog.text

    def test_non_finite_concurrency_values_are_dropped(self, results_dir: Path) -> None:
        case = make_case(conc_num_list=[1, float("inf")])
        case["task_config"]["case_config"]["concurrency_search_config"] = {
            "num_concurrency": [1, float("inf")],
        }
        # json.dumps writes the non-standard `Infinity` token, which json.loads accepts.
        write_result(results_dir / "result_20240603_inf.json", [case])
        results = load_result_files(results_dir)
        loaded = next(r for r in results if r.filename == "result_20240603_inf.json")
        assert loaded.results[0].task_config.num_concurrency == (1,)
        assert loaded.results[0].metrics.conc_num_list == (1,)
        assert len(results) == 4

    def test_arithmetic_errors_are_skipped(self, results_dir: Path) -> None:
        with patch.object(ResultFile, "from_dict", side_effect=OverflowError("too big")):
            assert load_result_files(results_dir) == []

    def test_strict_mode_raises(self, results_dir: Path) -> None:
        (results_dir / "result_20240601_broken.json").write_text("{oops")
        with pytest.raises(ValueError):
            load_result_files(results_dir, skip_invalid=False)

    def test_empty_directory(self, tmp_path: Path) -> None:
        assert load_result_files(tmp_path) == []

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_result_files(tmp_path / "nope")


class TestSources:
    def test_local_source(self, tmp_path: Path) -> None:
        assert LocalResultsSource(tmp_path).local_root() == tmp_path
        assert resolve_source_root(str(tmp_path)) == tmp_path

    def test_local_source_rejects_file(self, tmp_path: Path) -> None:
        f = tmp_path / "result_x.json"
        f.write_text("{}")
        with pytest.raises(NotADirectoryError):
            LocalResultsSource(f).local_root()

    def test_hf_source_downloads_only_result_files(self, results_dir: Path) -> None:
        source = HFResultsSource(repo_id="org/vdbbench-results", revision="v1")
        with patch(
            "vdbbench_dashboard.sources.snapshot_download",
            return_value=str(results_dir),
        ) as mock:
            results = load_result_files(source)

        mock.assert_called_once_with(
            repo_id="org/vdbbench-results",
            repo_type="dataset",
            revision="v1",
            cache_dir=None,
            allow_patterns=RESULT_PATTERNS,
        )
        assert len(results) == 3

    def test_hf_source_cache_dir(self, tmp_path: Path) -> None:
        source = HFResultsSource(repo_id="org/r", cache_dir=tmp_path / "cache")
        with patch(
            "vdbbench_dashboard.sources.snapshot_download",
            return_value=str(tmp_path),
        ) as mock:
            assert source.local_root() == tmp_path
        assert mock.call_args.kwargs["cache_dir"] == str(tmp_path / "cache")

    def test_hf_source_subdir(self, tmp_path: Path) -> None:
        snapshot = tmp_path / "snapshot"
        write_result(
            snapshot / "vectordb_bench" / "results" / "Milvus" / "result_20240512_m.json",
            [make_case()],
        )
        source = HFResultsSource(repo_id="org/vdbbench", subdir="/vectordb_bench/results/")
        assert source.allow_patterns == [
            "vectordb_bench/results/result_*.json",
            "vectordb_bench/results/**/result_*.json",
        ]
        with patch(
            "vdbbench_dashboard.sources.snapshot_download",
            return_value=str(snapshot),
        ) as mock:
            results = load_result_files(source)
        assert mock.call_args.kwargs["allow_patterns"] == source.allow_patterns
        assert [r.filename for r in results] == ["result_20240512_m.json"]

    def test_hf_source_missing_subdir(self, tmp_path: Path) -> None:
        source = HFResultsSource(repo_id="org/vdbbench", subdir="results")
        with patch(
            "vdbbench_dashboard.sources.snapshot_download",
            return_value=str(tmp_path),
        ):
            with pytest.raises(FileNotFoundError):
                source.local_root()
