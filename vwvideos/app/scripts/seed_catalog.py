from __future__ import annotations

import argparse

from vwvideos.app.config import load_settings
from vwvideos.app.logging_config import configure_application_logging
from vwvideos.app.repositories.category_repository import CategoryRepository
from vwvideos.app.repositories.database import Database
from vwvideos.app.repositories.vw_type_repository import ALL_TYPES_SLUG, VWTypeRepository

# (name, slug, description)
SEED_CATEGORIES: tuple[tuple[str, str, str], ...] = (
    (
        "Body",
        "body",
        "Guides and tips on sheet metal, rust repair, doors, fenders, and paintwork "
        "for classic VWs.",
    ),
    (
        "Brakes",
        "brakes",
        "How-tos and troubleshooting for brakes, master cylinders, and brake lines.",
    ),
    (
        "Chassis",
        "chassis",
        "Information on frame, floor pans, and underbody structure specific to air-cooled VWs.",
    ),
    (
        "Electrical",
        "electrical",
        "Wiring, lighting, charging systems, and fixes for 6V and 12V VW electrical issues.",
    ),
    (
        "Engine",
        "engine",
        "Maintenance, tuning, rebuilding, and upgrades for classic air-cooled VW engines.",
    ),
    (
        "Interior",
        "interior",
        "Restoration and customization of seats, dashboards, carpets, and headliners.",
    ),
    (
        "Suspension",
        "suspension",
        "Repair and modification of beams, shocks, torsion bars, and ride height on VWs.",
    ),
    (
        "Tools & Procedures",
        "tools-procedures",
        "Essential tools, workshop methods, and best practices for DIY VW repair, "
        "maintenance and restoration.",
    ),
    (
        "Transaxle",
        "transaxle",
        "Work on gearboxes, clutches, shift linkage, and axle setups in vintage VWs.",
    ),
    (
        "Racing",
        "racing",
        "Performance tuning, race builds, and event coverage focused on classic VW motorsports.",
    ),
    (
        "Restorations",
        "restorations",
        "Step-by-step restorations, project overviews, and before-and-after builds "
        "of vintage VWs.",
    ),
    (
        "Wheels & Tires",
        "wheels-tires",
        "Wheel alignment, tire selection, and performance upgrades for classic VWs.",
    ),
)

SEED_VW_TYPES: tuple[tuple[str, str, str], ...] = (
    (
        "Beetle",
        "beetle",
        "The iconic air-cooled Volkswagen Beetle, from classic split-windows to late models.",
    ),
    (
        "Ghia",
        "ghia",
        "The elegant Karmann Ghia, combining Italian styling with VW reliability.",
    ),
    (
        "Thing",
        "thing",
        "The rugged Type 181, known as the Thing in the US, designed for military "
        "and civilian use.",
    ),
    (
        "Bus",
        "bus",
        "The versatile Type 2 Transporter, from early splits to late bays, serving as vans, "
        "campers, and more.",
    ),
    (
        "Off-Road",
        "off-road",
        "VW's off-road vehicles including the Iltis, Syncro, and lifted variants of "
        "standard models.",
    ),
    (
        "Type 3",
        "type-3",
        "The Notchback, Fastback, and Squareback models, featuring the pancake engine.",
    ),
    (
        "Type 4",
        "type-4",
        "The larger 411/412 models and Porsche 914, sharing the Type 4 engine platform.",
    ),
    (
        "All",
        ALL_TYPES_SLUG,
        "Content applicable to all air-cooled Volkswagen models and platforms.",
    ),
)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Seed the How-To VW Videos catalog with its base categories and VW types.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report which records would be created.",
    )
    return parser.parse_args()


def seed_catalog(database: Database, *, dry_run: bool = False) -> tuple[list[str], list[str]]:
    """Create missing seed rows; existing rows are left untouched."""
    categories = CategoryRepository(database)
    vw_types = VWTypeRepository(database)
    created_categories: list[str] = []
    created_vw_types: list[str] = []

    for sort_order, (name, slug, description) in enumerate(SEED_CATEGORIES):
        if categories.find_by_name(name) is not None:
            continue
        if not dry_run:
            categories.create_category(
                name=name, slug=slug, description=description, sort_order=sort_order
            )
        created_categories.append(name)

    for sort_order, (name, slug, description) in enumerate(SEED_VW_TYPES):
        if vw_types.get_by_slug(slug) is not None:
            continue
        if not dry_run:
            vw_types.create_vw_type(
                name=name, slug=slug, description=description, sort_order=sort_order
            )
        created_vw_types.append(name)

    return created_categories, created_vw_types


def main() -> None:
    args = _parse_args()
    settings = load_settings()
    configure_application_logging(settings)
    database = Database(settings.db_path)
    database.initialize()

    created_categories, created_vw_types = seed_catalog(database, dry_run=args.dry_run)
    verb = "Would create" if args.dry_run else "Created"
    print(f"{verb} categories: {', '.join(created_categories) or '-'}")
    print(f"{verb} VW types: {', '.join(created_vw_types) or '-'}")


if __name__ == "__main__":
    main()
