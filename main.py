"""
Entry point for the campaign planner CLI

Usage: python main.py [details.json]
"""

import asyncio
import json
import sys
from datetime import date, timedelta
from pathlib import Path

from campaign_planner.campaign_planner import CampaignPlanner
from campaign_planner.models import CampaignDetails
from campaign_planner.utils.document_utils import encode_file
from campaign_planner.utils.export import export_zip


def example_details() -> CampaignDetails:
    start = date.today()
    return CampaignDetails(
        campaign_name="Summer Running Shoes Launch",
        country="United Kingdom",
        start_date=start,
        end_date=start + timedelta(days=30),
        landing_page_url="https://example.com/running",
        paid_media_budget=10000,
        product_benefits="Lightweight, recycled materials, 20% launch discount",
        customer_action="Buy a pair during the launch month",
        brand_values="Sustainability, performance",
    )


def load_details(path: str) -> CampaignDetails:
    """
    Read campaign details from JSON. Attachments may be given as file paths,
    relative to the JSON file, and are encoded on load.
    """
    base = Path(path).parent
    with open(path) as f:
        data = json.load(f)

    for key in ("product_image", "product_details_document"):
        if isinstance(data.get(key), str):
            data[key] = encode_file(base / data[key])
    data["supporting_documents"] = [
        encode_file(base / doc) if isinstance(doc, str) else doc
        for doc in data.get("supporting_documents", [])
    ]
    return CampaignDetails.model_validate(data)


def main():
    """Main CLI entry point"""
    print("=" * 80)
    print("Campaign Planner - Full Workflow")
    print("=" * 80)

    if len(sys.argv) > 1:
        details = load_details(sys.argv[1])
    else:
        details = example_details()
        print(f"\nUsing example campaign: {details.campaign_name}")

    planner = CampaignPlanner()
    instructions = input("Additional instructions (press Enter to skip): ").strip()

    # Run workflow
    result = asyncio.run(planner.run(details, instructions or None))
    campaign = result["campaign"]

    # Display results
    print("\n" + "=" * 80)
    print("WORKFLOW COMPLETED - Campaign Plan:")
    print("=" * 80)
    for segment in campaign.audience_segments:
        print(f"\n{segment.name}: ${segment.budget if segment.budget is not None else 'N/A'}")
        for split in segment.media_split:
            print(f"  {split.channel}: ${split.budget}")
        for group in segment.creative_groups:
            print(f"  [{group.aspect_ratio}] {group.name}: \"{group.selected_headline}\"")

    if result.get("errors"):
        print("\nErrors:")
        for region, message in result["errors"].items():
            print(f"  {region}: {message}")

    if result.get("reauthorization_required"):
        print("\n✗ The API key was rejected. Select a different key and run again.")

    with open("campaign-plan.zip", "wb") as f:
        f.write(export_zip(campaign))
    print("\n✓ Plan exported to campaign-plan.zip")


if __name__ == "__main__":
    main()
