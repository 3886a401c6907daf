import pytest

from voicehints.core.settings import DEFAULT_SETTINGS, BadgeSize, HintSettings, PredictionMode


def test_defaults() -> None:
    settings = HintSettings()

    assert settings.cone_angle == 40.0
    assert settings.max_distance == 600.0
    assert settings.top_k == 6
    assert settings.risk_confirmation is True
    assert settings.badge_size == BadgeSize.MEDIUM
    assert settings.prediction_mode == PredictionMode.TRAJECTORY


def test_from_dict_reads_camel_case_keys() -> None:
    settings = HintSettings.from_dict(
        {
            "coneAngle": 60,
            "maxDistance": 900,
            "topK": 4,
            "hysteresis": 1200,
            "riskConfirmation": False,
            "badgeSize": "LARGE",
            "predictionMode": "proximity",
            "proximityRadius": 300,
            "tickInterval": 100,
        }
    )

    assert settings.cone_angle == 60
    assert settings.max_distance == 900
    assert settings.top_k == 4
    assert settings.hysteresis_ms == 1200
    assert settings.risk_confirmation is False
    assert settings.badge_size == BadgeSize.LARGE
    assert settings.prediction_mode == PredictionMode.PROXIMITY
    assert settings.proximity_radius == 300
    assert settings.tick_interval_ms == 100


def test_out_of_range_values_are_clamped() -> None:
    settings = HintSettings.from_dict({"coneAngle": 500, "topK": 0, "maxDistance": 1, "tickInterval": 5})

    assert settings.cone_angle == 180
    assert settings.top_k == 1
    assert settings.max_distance == 50
    assert settings.tick_interval_ms == 50


def test_integer_fields_stay_integers() -> None:
    settings = HintSettings.from_dict({"topK": 3.6, "hysteresis": 250.4})

    assert settings.top_k == 4
    assert isinstance(settings.top_k, int)
    assert settings.hysteresis_ms == 250


def test_empty_payload_gives_defaults() -> None:
    assert HintSettings.from_dict(None) == DEFAULT_SETTINGS
    assert HintSettings.from_dict({}) == DEFAULT_SETTINGS


def test_unknown_badge_size_raises() -> None:
    with pytest.raises(ValueError):
        HintSettings.from_dict({"badgeSize": "gigantic"})


def test_unknown_prediction_mode_raises() -> None:
    with pytest.raises(ValueError):
        HintSettings.from_dict({"predictionMode": "psychic"})


def test_to_dict_round_trips_through_from_dict() -> None:
    settings = HintSettings(cone_angle=75, top_k=3, badge_size=BadgeSize.XLARGE)

    assert HintSettings.from_dict(settings.to_dict()) == settings


def test_updated_merges_partial_changes() -> None:
    settings = DEFAULT_SETTINGS.updated({"topK": 2})

    assert settings.top_k == 2
    assert settings.cone_angle == DEFAULT_SETTINGS.cone_angle


def test_non_numeric_value_raises_when_strict() -> None:
    with pytest.raises(ValueError):
        HintSettings.from_dict({"topK": "six"})


def test_lenient_load_keeps_defaults_for_invalid_values() -> None:
    settings = HintSettings.from_dict(
        {"badgeSize": "huge", "topK": "six", "coneAngle": [1, 2], "maxDistance": 900},
        strict=False,
    )

    assert settings.badge_size == DEFAULT_SETTINGS.badge_size
    assert settings.top_k == DEFAULT_SETTINGS.top_k
    assert settings.cone_angle == DEFAULT_SETTINGS.cone_angle
    assert settings.max_distance == 900
