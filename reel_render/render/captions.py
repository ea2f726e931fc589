from pathlib import Path

from reel_render.schemas.timeline import CaptionEntry


def format_srt_time(seconds: float) -> str:
    total_ms = int(round(max(0.0, seconds) * 1000))
    hours = total_ms // 3_600_000
    minutes = (total_ms % 3_600_000) // 60_000
    secs = (total_ms % 60_000) // 1000
    ms = total_ms % 1000
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{ms:03d}"


def build_srt(captions: list[CaptionEntry]) -> str:
    """SubRip text: index, time range, text, blank line per caption."""
    lines: list[str] = []
    for index, caption in enumerate(captions, start=1):
        lines.extend([
            str(index),
            f"{format_srt_time(caption.t0)} --> {format_srt_time(caption.t1)}",
            caption.text.strip(),
            "",
        ])
    return "\n".join(lines) + ("\n" if lines else "")


def write_srt_file(output_path: str | Path, captions: list[CaptionEntry]) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(build_srt(captions), encoding="utf-8")
    return output_path
