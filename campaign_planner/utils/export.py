"""
Campaign plan export: markdown summary plus generated images in a zip archive
"""

import base64
import io
import re
import zipfile

from ..models import Campaign

IMAGE_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


def segment_folder_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", name.lower())


def creative_file_name(group_name: str, mime_type: str) -> str:
    stem = re.sub(r"\s+", "-", group_name)
    return f"{stem}.{IMAGE_EXTENSIONS.get(mime_type, 'jpg')}"


def build_markdown_summary(campaign: Campaign) -> str:
    """Markdown overview of the plan: budget, per segment media split, creative groups and headlines"""
    lines = [
        f"# Campaign Plan: {campaign.campaign_name}",
        "",
        "## Overview",
        f"Country: {campaign.country}",
        f"Budget: ${campaign.paid_media_budget}",
        f"Dates: {campaign.start_date.isoformat()} - {campaign.end_date.isoformat()}",
        "",
    ]

    if campaign.proposition:
        lines += ["## Proposition", campaign.proposition, ""]

    if campaign.budget_analysis:
        lines += ["## Budget Analysis", campaign.budget_analysis, ""]

    owned = campaign.owned_media_analysis
    if owned is not None:
        lines += ["## Owned Media", f"Applicable: {'Yes' if owned.is_applicable else 'No'}", owned.justification]
        if owned.recommended_channels:
            lines.append(f"Channels: {', '.join(owned.recommended_channels)}")
        lines.append("")

    for segment in campaign.audience_segments:
        if not segment.is_selected:
            continue
        lines += [f"### Segment: {segment.name}", segment.description, ""]

        if segment.budget is not None:
            lines.append(f"Budget: ${segment.budget}")
            for split in segment.media_split:
                lines.append(f"- {split.channel}: ${split.budget}")
            lines.append("")

        folder = segment_folder_name(segment.name)
        for group in segment.creative_groups:
            lines.append(f"#### Group: {group.name} ({', '.join(group.channels)})")
            creative = group.generated_creative
            if creative is not None and creative.image_base64:
                lines.append(f"Image saved as {folder}/{creative_file_name(group.name, creative.mime_type)}")
                lines.append(f'Headline: "{creative.notification_text}"')
            else:
                lines.append(f'Headline: "{group.selected_headline}"')
            lines.append("")

    return "\n".join(lines)


def export_zip(campaign: Campaign) -> bytes:
    """
    Package the plan as a zip archive

    Layout:
        campaign_plan.md
        <segment-slug>/<Group-Name>.<ext>   one image per generated creative
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("campaign_plan.md", build_markdown_summary(campaign))

        for segment in campaign.audience_segments:
            if not segment.is_selected:
                continue
            folder = segment_folder_name(segment.name)
            for group in segment.creative_groups:
                creative = group.generated_creative
                if creative is None or not creative.image_base64:
                    continue
                archive.writestr(
                    f"{folder}/{creative_file_name(group.name, creative.mime_type)}",
                    base64.b64decode(creative.image_base64),
                )

    return buffer.getvalue()
