from pathlib import Path


def truncate_text(text: str, max_len: int) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def ensure_dirs(*dirs: str | Path) -> None:
    for directory in dirs:
        Path(directory).mkdir(parents=True, exist_ok=True)
