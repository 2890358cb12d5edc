import pytest

from api.models.credits import CreditBalance, CreditType, credit_property, credit_type_from_token, token_label
from api.models.exam_session import ExamType


@pytest.fixture
def balance() -> CreditBalance:
    return CreditBalance.from_hubspot(
        {
            "id": 7,
            "properties": {"sj_credits": "2", "cs_credits": "0", "sjmini_credits": "1", "shared_mock_credits": "3"},
        }
    )


def test__from_hubspot(balance: CreditBalance) -> None:
    assert balance.contact_id == "7"
    assert balance.specific_for(ExamType.SITUATIONAL_JUDGMENT) == 2
    assert balance.shared == 3


@pytest.mark.parametrize(
    "exam_type,available",
    [(ExamType.SITUATIONAL_JUDGMENT, 5), (ExamType.CLINICAL_SKILLS, 3), (ExamType.MINI_MOCK, 1)],
)
def test__available_for(balance: CreditBalance, exam_type: ExamType, available: int) -> None:
    assert balance.available_for(exam_type) == available


def test__mini_mock_never_uses_shared_credits(balance: CreditBalance) -> None:
    assert balance.shared_for(ExamType.MINI_MOCK) == 0
    assert balance.get(CreditType.SHARED, ExamType.MINI_MOCK) == 3


def test__with_value(balance: CreditBalance) -> None:
    updated = balance.with_value(CreditType.SPECIFIC, ExamType.CLINICAL_SKILLS, 4)

    assert updated.specific_for(ExamType.CLINICAL_SKILLS) == 4
    assert balance.specific_for(ExamType.CLINICAL_SKILLS) == 0
    assert balance.with_value(CreditType.SHARED, ExamType.CLINICAL_SKILLS, 0).shared == 0


@pytest.mark.parametrize(
    "credit_type,exam_type,prop,label",
    [
        (CreditType.SPECIFIC, ExamType.SITUATIONAL_JUDGMENT, "sj_credits", "Situational Judgment Token"),
        (CreditType.SPECIFIC, ExamType.CLINICAL_SKILLS, "cs_credits", "Clinical Skills Token"),
        (CreditType.SPECIFIC, ExamType.MINI_MOCK, "sjmini_credits", "Mini-mock Token"),
        (CreditType.SHARED, ExamType.CLINICAL_SKILLS, "shared_mock_credits", "Shared Token"),
    ],
)
def test__credit_property(credit_type: CreditType, exam_type: ExamType, prop: str, label: str) -> None:
    assert credit_property(credit_type, exam_type) == prop
    assert token_label(credit_type, exam_type) == label
    assert credit_type_from_token(label) == credit_type


def test__credit_type_from_unknown_token() -> None:
    assert credit_type_from_token(None) is None
    assert credit_type_from_token("Unknown Token") is None
