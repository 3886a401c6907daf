from voicehints.core.models import WeightVector
from voicehints.core.settings import HintSettings, PredictionMode
from voicehints.core.store import MAX_METRICS_SESSIONS, HintStore


def test_settings_round_trip(tmp_path) -> None:
    store = HintStore(str(tmp_path / "store.db"))
    store.save_settings(HintSettings(top_k=3, prediction_mode=PredictionMode.PROXIMITY))

    loaded = store.load_settings()

    assert loaded.top_k == 3
    assert loaded.prediction_mode == PredictionMode.PROXIMITY


def test_missing_settings_load_as_defaults(tmp_path) -> None:
    store = HintStore(str(tmp_path / "store.db"))

    assert store.load_settings() == HintSettings()


def test_store_survives_reopen(tmp_path) -> None:
    path = str(tmp_path / "nested" / "store.db")
    HintStore(path).save_weights(WeightVector(alignment=4.0))

    reopened = HintStore(path)

    assert reopened.load_weights().alignment == 4.0


def test_weights_absent_until_saved_and_clearable(tmp_path) -> None:
    store = HintStore(str(tmp_path / "store.db"))
    assert store.load_weights() is None

    store.save_weights(WeightVector(size=2.5))
    assert store.load_weights() == WeightVector(size=2.5)

    store.clear_weights()
    assert store.load_weights() is None


def test_enabled_flag(tmp_path) -> None:
    store = HintStore(str(tmp_path / "store.db"))
    assert store.get_enabled() is True
    assert store.get_enabled(default=False) is False

    store.set_enabled(False)

    assert store.get_enabled() is False


def test_metrics_history_keeps_latest_sessions(tmp_path) -> None:
    store = HintStore(str(tmp_path / "store.db"))

    for index in range(MAX_METRICS_SESSIONS + 5):
        store.append_metrics({"session": index}, saved_at=float(index))

    history = store.list_metrics()
    assert len(history) == MAX_METRICS_SESSIONS
    assert history[0]["session"] == 5
    assert history[-1]["session"] == MAX_METRICS_SESSIONS + 4
    assert history[-1]["saved_at"] == float(MAX_METRICS_SESSIONS + 4)


def test_clear_metrics(tmp_path) -> None:
    store = HintStore(str(tmp_path / "store.db"))
    store.append_metrics({"session": 1})

    store.clear_metrics()

    assert store.list_metrics() == []


def test_corrupted_settings_fall_back_per_field(tmp_path) -> None:
    store = HintStore(str(tmp_path / "store.db"))
    store._put("settings", {"badgeSize": "huge", "topK": "six", "predictionMode": "proximity"})

    loaded = store.load_settings()

    assert loaded.badge_size == HintSettings().badge_size
    assert loaded.top_k == HintSettings().top_k
    assert loaded.prediction_mode == PredictionMode.PROXIMITY


def test_non_object_settings_load_as_defaults(tmp_path) -> None:
    store = HintStore(str(tmp_path / "store.db"))
    store._put("settings", ["not", "a", "mapping"])

    assert store.load_settings() == HintSettings()
