from mockprep.formatting import (
    activity_type_label,
    difficulty_label,
    file_extension,
    format_file_size,
    initials,
    is_supported_resume_type,
    truncate_text,
)
from mockprep.services.resume import generate_resume_file_path, sanitize_file_name


def test_format_file_size() -> None:
    assert format_file_size(0) == "0 Bytes"
    assert format_file_size(512) == "512 Bytes"
    assert format_file_size(1536) == "1.5 KB"
    assert format_file_size(10 * 1024 * 1024) == "10 MB"


def test_labels() -> None:
    assert difficulty_label("difficult") == "Difficult"
    assert activity_type_label("settings_change") == "Settings Updated"
    assert activity_type_label("mystery") == "Unknown Activity"


def test_file_helpers() -> None:
    assert file_extension("Resume.Final.DOCX") == "docx"
    assert file_extension("README") == ""
    assert is_supported_resume_type("cv.pdf")
    assert not is_supported_resume_type("cv.png")


def test_text_helpers() -> None:
    assert truncate_text("short", 10) == "short"
    assert truncate_text("a long description", 10) == "a long ..."
    assert initials("ada king lovelace") == "AK"


def test_resume_path_is_timestamped_and_sanitized() -> None:
    assert sanitize_file_name("my résumé (v2).pdf") == "my_r_sum___v2_.pdf"
    assert generate_resume_file_path("u1", "my cv.pdf", timestamp_ms=1700000000000) == "u1/1700000000000_my_cv.pdf"
