"""
File delivery channel
"""
from pathlib import Path
from typing import List

import aiofiles

from core.entities import DailyPayload
from delivery.base import DeliveryChannel

STATUS_NOTES = {
    "starved": "_No content found today._",
    "incomplete": "_Not finished in time, will be rebuilt on the next request._",
}


def render_markdown(payload: DailyPayload) -> str:
    md_lines: List[str] = [f"# Daily briefs for {payload.date}", ""]

    for brief in payload.briefs_by_category.values():
        md_lines.append(f"## {brief.name}")

        if brief.status in STATUS_NOTES:
            md_lines.append(STATUS_NOTES[brief.status])
            md_lines.append("")
            continue

        md_lines.append(brief.summary)
        md_lines.append("")
        for highlight in brief.highlights:
            md_lines.append(f"- {highlight}")
        if brief.top_sources:
            md_lines.append("")
            md_lines.append("**Sources:**")
            for source in brief.top_sources:
                md_lines.append(f"- [{source.title}]({source.url}) ({source.source_name}, {source.author})")
        md_lines.append("")

    return "\n".join(md_lines)


class FileDelivery(DeliveryChannel):
    name = "file"

    def __init__(self, output_dir: str = "output"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    async def deliver(self, payload: DailyPayload) -> None:
        base = self.output_dir / payload.date

        async with aiofiles.open(base.with_suffix(".json"), "w", encoding="utf-8") as f:
            await f.write(payload.model_dump_json(indent=2))

        async with aiofiles.open(base.with_suffix(".md"), "w", encoding="utf-8") as f:
            await f.write(render_markdown(payload))
