from datetime import date, datetime

import pytz

from conftest import add_school, add_survey
from csat.models.survey import SurveyResponse, transaction_type_label
from csat.utils.helpers import (
    add_months,
    day_bounds_utc,
    format_long_date,
    parse_id,
    round_half_up,
    time_ago,
)


def test_display_properties():
    s = SurveyResponse(
        first_name="Juan", middle_name="Miguel", last_name="Dela Cruz",
        transaction_type="other", other_transaction_specify="Diploma pickup",
        satisfaction_rating="neutral", other_school_specify="Night College",
    )
    assert s.full_name == "Juan Miguel Dela Cruz"
    assert s.display_name == "Juan Dela Cruz"
    assert s.formal_name == "Dela Cruz, Juan M."
    assert s.school_display_name == "Other: Night College"
    assert s.transaction_type_display == "Other: Diploma pickup"
    assert s.satisfaction_label == "Neutral"


def test_star_rating_mapping():
    assert SurveyResponse(satisfaction_rating="dissatisfied").star_rating == 2
    assert SurveyResponse(satisfaction_rating="satisfied").star_rating == 5
    assert SurveyResponse(satisfaction_rating="neutral").star_rating == 3


def test_transaction_type_labels():
    assert transaction_type_label("transcript") == "Transcript Request"
    assert transaction_type_label("scholarship") == "Scholarship Application"
    assert transaction_type_label("graduation") == "Graduation"
    assert transaction_type_label(None) == ""


def test_legacy_shape(app):
    with app.app_context():
        school = add_school("Western University")
        with_school = add_survey(school_id=school.id).to_legacy_dict()
        other = add_survey().to_legacy_dict()
    assert with_school["school_hei"] == "Western University"
    assert with_school["client_name"] == "Juan Dela Cruz"
    assert other["school_hei"] == "other"
    assert other["other_school_specify"] == "Walk-in Institute"


def test_helpers():
    assert round_half_up(2.25, 1) == 2.3
    assert round_half_up(66.66666, 1) == 66.7
    assert add_months(date(2024, 1, 31), -1) == date(2023, 12, 1)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 1)
    assert format_long_date(date(2024, 1, 5)) == "Jan 5, 2024"

    now = datetime(2024, 6, 1, 12, 0, tzinfo=pytz.utc)
    assert time_ago(datetime(2024, 6, 1, 9, 0, tzinfo=pytz.utc), now) == "3 hours ago"
    assert time_ago(datetime(2024, 5, 31, 12, 0), now) == "1 day ago"
    assert time_ago(now, now) == "just now"

    lo, hi = day_bounds_utc(date(2024, 6, 1), date(2024, 6, 1), pytz.timezone("Asia/Manila"))
    assert lo == datetime(2024, 5, 31, 16, 0, tzinfo=pytz.utc)
    assert hi == datetime(2024, 6, 1, 16, 0, tzinfo=pytz.utc)


def test_round_half_up_bad_input_is_zero():
    assert round_half_up("abc") == 0.0
    assert round_half_up(None) == 0.0


def test_parse_id_accepts_only_ascii_in_range():
    assert parse_id("42") == 42
    assert parse_id(" 7 ") == 7
    assert parse_id(2147483647) == 2147483647
    for bad in ("²", "٣", "0", "-1", "1.5", "", None, "2147483648", "9" * 30):
        assert parse_id(bad) is None
