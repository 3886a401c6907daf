from voicehints.core.models import Candidate, ExecutionResult, RankedSet, RawCandidate, Rect, WeightVector


def test_candidate_to_dict_rounds_geometry() -> None:
    raw = RawCandidate(handle="vh-3", rect=Rect(10, 20, 30, 40), text="Save", priority=10, element_type="button")
    candidate = Candidate.from_raw(raw).with_geometry(distance=123.4567, alignment=0.987654).with_score(4.123456)

    payload = candidate.to_dict()

    assert payload["handle"] == "vh-3"
    assert payload["rect"] == {"left": 10, "top": 20, "width": 30, "height": 40}
    assert payload["type"] == "button"
    assert payload["distance"] == 123.46
    assert payload["alignment"] == 0.9877
    assert payload["score"] == 4.1235
    assert payload["is_risky"] is False


def test_execution_result_to_dict() -> None:
    result = ExecutionResult(handle="vh-1", success=False, action="click", failure_code="TARGET_MISSING")

    assert result.to_dict() == {
        "handle": "vh-1",
        "success": False,
        "action": "click",
        "failure_code": "TARGET_MISSING",
        "detail": "",
    }


def test_ranked_set_ordinals_are_one_based() -> None:
    first = Candidate.from_raw(RawCandidate(handle="a", rect=Rect(0, 0, 1, 1)))
    second = Candidate.from_raw(RawCandidate(handle="b", rect=Rect(0, 0, 1, 1)))
    ranked = RankedSet(candidates=(first, second))

    assert ranked.at_ordinal(1) is first
    assert ranked.at_ordinal(2) is second
    assert ranked.at_ordinal(0) is None
    assert ranked.at_ordinal(3) is None


def test_weight_vector_from_dict_clamps() -> None:
    weights = WeightVector.from_dict({"alignment": 99, "risk": -3})

    assert weights.alignment == 10.0
    assert weights.risk == 0.0
