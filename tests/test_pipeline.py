import json

import numpy as np
import pytest

from nvision.config import DetectionConfig
from nvision.errors import InvalidConfig, InvalidInput, ResourceExhausted
from nvision.grid import Grid
from nvision.pipeline import DetectionRun, PipelineState, detect
from nvision.report import report_to_dict
from nvision.synthetic import Spot, make_scan

PLAIN = DetectionConfig(
    threshold=0.5,
    min_size=1,
    max_size=20,
    confidence_threshold=0.0,
    median_filter=False,
    background_correction=False,
)


def test_single_blob():
    data = np.zeros((5, 5))
    data[1:4, 1:4] = 1.0
    report = detect(Grid(data), PLAIN)
    assert report.total == 1
    c = report.centers[0]
    assert c.id == 1
    assert c.size == 9
    assert c.x == pytest.approx(2.0)
    assert c.y == pytest.approx(2.0)
    assert c.intensity == pytest.approx(1.0)
    assert c.confidence == pytest.approx(1.0)


def test_two_disjoint_blobs():
    data = np.zeros((10, 10))
    data[1:3, 1:3] = 1.0
    data[6:8, 6:8] = 1.0
    report = detect(Grid(data), PLAIN.with_overrides(max_size=4))
    assert report.total == 2
    assert [c.size for c in report.centers] == [4, 4]
    assert [c.confidence for c in report.centers] == pytest.approx([1.0, 1.0])
    assert [(c.x, c.y) for c in report.centers] == [(1.5, 1.5), (6.5, 6.5)]


@pytest.mark.parametrize(
    "config",
    [
        DetectionConfig(),
        PLAIN,
        DetectionConfig(threshold=0.0, min_size=1, max_size=2, confidence_threshold=0.0),
        DetectionConfig(median_filter=False, filter_size=7, connectivity=2, edge_mode="reflect"),
    ],
)
def test_all_zero_grid_is_an_empty_success(config: DetectionConfig):
    report = detect(Grid(np.zeros((8, 6))), config)
    assert report.total == 0
    assert report.centers == ()
    assert report.mask.shape == (8, 6)
    assert not report.mask.any()


def test_detect_is_deterministic():
    grid = make_scan(64, [Spot(20, 20, 9, 0.8), Spot(45, 30, 7, 0.85)], seed=5)
    a = json.dumps(report_to_dict(detect(grid, DetectionConfig())))
    b = json.dumps(report_to_dict(detect(grid, DetectionConfig())))
    assert a == b


def test_threshold_monotonicity_on_isolated_spots():
    spots = [Spot(10, 10, 9, 0.9), Spot(30, 12, 7, 0.6), Spot(45, 40, 11, 0.8), Spot(15, 45, 8, 0.4)]
    grid = make_scan(60, spots, noise=0.0, background=False)
    cfg = PLAIN.with_overrides(max_size=10_000)
    totals = [detect(grid, cfg.with_overrides(threshold=t)).total for t in np.linspace(0.0, 1.0, 21)]
    assert totals[0] == len(spots)
    assert totals[-1] == 0
    assert all(b <= a for a, b in zip(totals, totals[1:]))


def test_recovers_planted_spots_on_gradient_background():
    spots = [Spot(15, 15, 9, 0.8), Spot(60, 20, 9, 0.8), Spot(25, 62, 9, 0.8), Spot(62, 60, 9, 0.8)]
    grid = make_scan(80, spots, noise=0.0, background=True)
    cfg = PLAIN.with_overrides(background_correction=True, max_size=100)
    report = detect(grid, cfg)
    assert report.total == len(spots)
    found = sorted((round(c.x), round(c.y)) for c in report.centers)
    assert found == sorted((int(s.x), int(s.y)) for s in spots)


def test_report_invariants_on_noisy_scan():
    spots = [Spot(12, 12, 9, 0.8), Spot(40, 15, 8, 0.82), Spot(30, 40, 10, 0.78)]
    grid = make_scan(56, spots, seed=11, noise=0.1)
    cfg = DetectionConfig(threshold=0.4, min_size=2, max_size=6, confidence_threshold=0.0)
    report = detect(grid, cfg)
    for c in report.centers:
        assert 0.0 <= c.confidence <= 1.0
        assert cfg.min_size <= c.size <= cfg.max_size
        min_r, min_c, max_r, max_c = c.bbox
        assert min_c <= c.x < max_c and min_r <= c.y < max_r
    assert [c.id for c in report.centers] == list(range(1, report.total + 1))


def test_detect_accepts_raw_rows_payload_and_mapping_config():
    rows = [[0.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 0.0]]
    params = {"threshold": 0.5, "minSize": 1, "maxSize": 4, "confidenceThreshold": 0.0,
              "medianFilter": False, "backgroundCorrection": False}
    from_rows = detect(rows, params)
    from_payload = detect({"scan_data": rows}, params)
    assert from_rows.total == from_payload.total == 1
    assert from_rows.config.min_size == 1


def test_report_mask_is_frozen():
    report = detect(Grid(np.eye(3)), PLAIN)
    with pytest.raises(ValueError):
        report.mask[0, 0] = False


def test_successful_run_walks_every_state():
    run = DetectionRun(Grid(np.eye(4)), PLAIN)
    assert run.state is PipelineState.IDLE
    report = run.execute()
    assert run.state is PipelineState.DONE
    assert run.report is report
    assert run.history == [
        PipelineState.IDLE,
        PipelineState.PREPROCESSING,
        PipelineState.THRESHOLDING,
        PipelineState.LABELING,
        PipelineState.EXTRACTING,
        PipelineState.DONE,
    ]
    with pytest.raises(RuntimeError):
        run.execute()


@pytest.mark.parametrize(
    "grid",
    [
        [[1.0, 2.0], [3.0]],
        [[1.0, float("nan")]],
        {"other": [[1.0]]},
        None,
        "scan",
    ],
)
def test_invalid_input_fails_from_idle(grid):
    run = DetectionRun(grid, PLAIN)
    with pytest.raises(InvalidInput):
        run.execute()
    assert run.state is PipelineState.FAILED
    assert run.history == [PipelineState.IDLE, PipelineState.FAILED]
    assert isinstance(run.error, InvalidInput)
    assert run.report is None


@pytest.mark.parametrize(
    "config",
    [
        PLAIN.with_overrides(min_size=20),
        PLAIN.with_overrides(threshold=1.01),
        PLAIN.with_overrides(filter_size=4),
        PLAIN.with_overrides(background_sigma=0.0),
        {"confidence_threshold": -0.2},
        42,
    ],
)
def test_invalid_config_fails_before_preprocessing(config):
    run = DetectionRun(Grid(np.eye(3)), config)
    with pytest.raises(InvalidConfig):
        run.execute()
    assert run.history == [PipelineState.IDLE, PipelineState.FAILED]


def test_memory_error_becomes_resource_exhausted(monkeypatch):
    def boom(grid, config):
        raise MemoryError

    monkeypatch.setattr("nvision.pipeline.preprocess", boom)
    run = DetectionRun(Grid(np.eye(3)), PLAIN)
    with pytest.raises(ResourceExhausted, match="preprocessing"):
        run.execute()
    assert run.state is PipelineState.FAILED
    assert run.history[-2:] == [PipelineState.PREPROCESSING, PipelineState.FAILED]
