"""Display helpers shared by the CLI and the API responses."""

from __future__ import annotations

DIFFICULTY_LABELS = {"easy": "Easy", "medium": "Medium", "difficult": "Difficult"}

ACTIVITY_TYPE_LABELS = {
    "resume_upload": "Resume Uploaded",
    "resume_delete": "Resume Deleted",
    "settings_change": "Settings Updated",
    "account_created": "Account Created",
    "profile_update": "Profile Updated",
    "password_change": "Password Changed",
}

RESUME_STATUS_LABELS = {"active": "Active", "processing": "Processing", "error": "Error"}

SUPPORTED_RESUME_EXTENSIONS = {"pdf", "doc", "docx", "txt"}


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


def difficulty_label(level: str) -> str:
    return DIFFICULTY_LABELS.get(level, level)


def activity_type_label(activity_type: str) -> str:
    return ACTIVITY_TYPE_LABELS.get(activity_type, "Unknown Activity")


def resume_status_label(status: str) -> str:
    return RESUME_STATUS_LABELS.get(status, status)


def file_extension(file_name: str) -> str:
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[-1].lower()


def is_supported_resume_type(file_name: str) -> bool:
    return file_extension(file_name) in SUPPORTED_RESUME_EXTENSIONS


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max(max_length - 3, 0)] + "..."


def initials(name: str) -> str:
    return "".join(word[0] for word in name.split() if word).upper()[:2]
