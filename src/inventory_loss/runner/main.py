"""
CLI main entry point.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

import yaml

from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..errors import LossLedgerError
from ..repository import EntryRepository
from ..services import ExportService, ImportService
from ..store import NewEntry, Product, SQLiteStore, UnitType

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from None


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="inventory-loss",
        description="Record inventory losses and exchange them as per-reason flat files",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # init command
    init_parser = subparsers.add_parser(
        "init", help="Create the config file (if missing) and the database"
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file",
    )

    # add command
    add_parser = subparsers.add_parser("add", help="Record a loss entry")
    add_parser.add_argument("--product", required=True, help="Product code")
    add_parser.add_argument(
        "--reason", required=True, help="Reason code (e.g. 01) or reason id"
    )
    add_parser.add_argument("--quantity", type=float, required=True, help="Quantity lost")
    add_parser.add_argument(
        "--unit-cost", type=float, default=0.0, help="Unit cost (default: 0)"
    )
    add_parser.add_argument("--notes", type=str, default=None, help="Free-text notes")
    add_parser.add_argument(
        "--name",
        type=str,
        default=None,
        help="Product name snapshot (default: catalog name)",
    )

    # export command
    subparsers.add_parser("export", help="Export unsynchronized entries, one file per reason")

    # import command
    import_parser = subparsers.add_parser("import", help="Import an export file")
    import_parser.add_argument("file", type=Path, help="Pipe-delimited export file")
    import_parser.add_argument(
        "--reason-id",
        type=str,
        default=None,
        help="Reason for all lines (default: from file name, then config)",
    )

    # status command
    status_parser = subparsers.add_parser("status", help="Show loss totals and pending entries")
    status_parser.add_argument("--from", dest="start", type=_iso_date, help="Start date")
    status_parser.add_argument("--to", dest="end", type=_iso_date, help="End date (inclusive)")

    # files command
    subparsers.add_parser("files", help="List exported files")

    # reasons command
    subparsers.add_parser("reasons", help="List loss reasons")

    # catalog command
    catalog_parser = subparsers.add_parser("catalog", help="Manage the product catalog")
    catalog_sub = catalog_parser.add_subparsers(dest="catalog_command")
    load_parser = catalog_sub.add_parser("load", help="Upsert products from a YAML file")
    load_parser.add_argument("file", type=Path, help="YAML file with a 'products' list")
    search_parser = catalog_sub.add_parser("search", help="Search products by code or name")
    search_parser.add_argument("term", type=str)
    search_parser.add_argument("--limit", type=int, default=10)
    delete_parser = catalog_sub.add_parser("delete", help="Soft-delete a product by code")
    delete_parser.add_argument("code", type=str)

    return parser


def open_repository(config: Config) -> EntryRepository:
    """Open the store (running migrations) and wrap it in a repository."""
    return EntryRepository(SQLiteStore(config.state_db_path))


def cmd_init(config: Config, config_path: Path, force: bool = False) -> int:
    """Create config file and database."""
    if force or not config_path.exists():
        create_default_config(config_path)
        print(f"✓ Wrote config: {config_path}")
    else:
        print(f"  ℹ️  Config already exists: {config_path}")

    store = SQLiteStore(config.state_db_path)
    print(f"✓ Database ready: {config.state_db_path} (schema v{store.schema_version()})")
    print(f"  Reasons: {len(store.list_reasons())}")
    return 0


def cmd_add(
    config: Config,
    product: str,
    reason: str,
    quantity: float,
    unit_cost: float,
    notes: str | None,
    name: str | None,
) -> int:
    """Record one loss entry."""
    repo = open_repository(config)

    found = repo.find_reason_by_code(reason) or repo.find_reason(reason)
    if found is None:
        print(f"❌ Unknown reason: {reason}")
        return 1

    entry_id = repo.insert(
        NewEntry(
            product_code=product,
            reason_id=found.id,
            quantity=quantity,
            unit_cost=unit_cost,
            notes=notes,
            product_name=name,
        )
    )
    print(f"✓ Entry {entry_id} recorded ({product} x {quantity}, reason {found.code})")
    return 0


def cmd_export(config: Config) -> int:
    """Export unsynchronized entries."""
    print("📤 Exporting pending entries...")

    repo = open_repository(config)
    service = ExportService(repo, config.export)
    result = service.export_all()

    print()
    print(result.summary(config.report.max_errors))
    if result.exported_files:
        print(f"\nFiles saved under: {config.export.root}")

    return 0 if result.success else 1


def cmd_import(config: Config, file: Path, reason_id: str | None) -> int:
    """Import an export file."""
    print(f"📥 Importing {file}...")

    repo = open_repository(config)
    service = ImportService(repo, config.import_, config.export.naming)
    result = service.import_file(file, reason_id=reason_id)

    print()
    print(result.summary(config.report.max_errors))
    return 0 if result.success else 1


def cmd_status(config: Config, start: date | None = None, end: date | None = None) -> int:
    """Show loss totals."""
    repo = open_repository(config)
    total = repo.aggregate_loss_value(start, end)

    print("\n📊 Loss Status")
    print("=" * 40)
    if start or end:
        print(f"  Period:                 {start or '...'} → {end or '...'}")
    print(f"  Entries:                {total.total_entries}")
    print(f"  Quantity lost:          {total.total_quantity:g}")
    print(f"  Loss value:             {total.total_value:.2f}")
    print(f"  Pending export:         {repo.pending_count()}")

    by_reason = repo.loss_by_reason(start, end)
    if by_reason:
        print("\n  By reason:")
        for row in by_reason:
            agg = row.aggregate
            print(
                f"    {row.reason_code} {row.description:<40} "
                f"{agg.total_entries:>5}  {agg.total_value:>10.2f}"
            )

    most_used = [u for u in repo.most_used_reasons(limit=5) if u.usage_count]
    if most_used:
        print("\n  Most used reasons:")
        for usage in most_used:
            print(f"    {usage.reason_code} {usage.description:<40} {usage.usage_count:>5}")

    imports = repo.list_imports(limit=5)
    if imports:
        print("\n  Recent imports:")
        for run in imports:
            print(
                f"    {run.imported_at}  {run.file_name}  "
                f"{run.lines_inserted}/{run.lines_total} imported, {run.lines_failed} failed"
            )
    print()

    return 0


def cmd_files(config: Config) -> int:
    """List exported files."""
    repo = open_repository(config)
    files = ExportService(repo, config.export).list_exported_files()

    if not files:
        print("No exported files")
        return 0

    for info in files:
        print(
            f"  📄 {info.reason_folder}/{info.file_name}  "
            f"{info.size} bytes  {info.modified_at:%Y-%m-%d %H:%M}"
        )
    print(f"\n✓ {len(files)} file(s) under {config.export.root}")
    return 0


def cmd_reasons(config: Config) -> int:
    """List active reasons."""
    repo = open_repository(config)
    for reason in repo.list_reasons():
        print(f"  [{reason.id}] {reason.code}  {reason.description}")
    return 0


def load_products(file: Path) -> list[Product]:
    """Read a catalog YAML file.

    Expected shape:
        products:
          - code: "7891234567890"
            name: "Arroz 5kg"
            unit_type: UN        # UN or KG
            regular_price: 25.99
            club_price: 22.99    # optional
    """
    with open(file, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"{file}: expected a mapping with a 'products' list")

    items = data.get("products") or []
    if not isinstance(items, list):
        raise ConfigValidationError(f"{file}: 'products' must be a list")

    products = []
    for item in items:
        if not isinstance(item, dict):
            raise ConfigValidationError(f"{file}: every product must be a mapping: {item!r}")
        if not item.get("code") or not item.get("name"):
            raise ConfigValidationError(f"{file}: every product needs code and name: {item}")
        club_price = item.get("club_price")
        try:
            product = Product(
                code=str(item["code"]).strip(),
                name=str(item["name"]).strip(),
                unit_type=UnitType(str(item.get("unit_type", "UN")).upper()),
                regular_price=float(item.get("regular_price", 0) or 0),
                club_price=float(club_price) if club_price is not None else None,
            )
        except ValueError as e:
            raise ConfigValidationError(f"{file}: invalid product {item['code']}: {e}") from e
        products.append(product)
    return products


def cmd_catalog_load(config: Config, file: Path) -> int:
    """Upsert products from YAML."""
    if not file.is_file():
        print(f"❌ File not found: {file}")
        return 1

    products = load_products(file)
    store = SQLiteStore(config.state_db_path)
    for product in products:
        store.upsert_product(product)

    print(f"✓ Loaded {len(products)} product(s)")
    return 0


def cmd_catalog_search(config: Config, term: str, limit: int) -> int:
    store = SQLiteStore(config.state_db_path)
    products = store.search_products(term, limit)
    for product in products:
        club = f"  club {product.club_price:.2f}" if product.club_price is not None else ""
        print(
            f"  [{product.code}] {product.name}  {product.unit_type.value}  "
            f"{product.regular_price:.2f}{club}"
        )
    print(f"\n✓ Found {len(products)} product(s)")
    return 0


def cmd_catalog_delete(config: Config, code: str) -> int:
    """Soft-delete a product; recorded entries keep their name snapshot."""
    repo = open_repository(config)
    if not repo.delete_product(code):
        print(f"❌ Product not found: {code}")
        return 1
    print(f"✓ Deleted product {code}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    # Load config
    try:
        config = load_config(parsed.config)
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    errors = config.validate()
    if errors:
        print("❌ Invalid configuration:")
        for error in errors:
            print(f"   - {error}")
        return 1

    # Route to command
    try:
        if parsed.command == "init":
            return cmd_init(config, parsed.config, parsed.force)
        elif parsed.command == "add":
            return cmd_add(
                config,
                product=parsed.product,
                reason=parsed.reason,
                quantity=parsed.quantity,
                unit_cost=parsed.unit_cost,
                notes=parsed.notes,
                name=parsed.name,
            )
        elif parsed.command == "export":
            return cmd_export(config)
        elif parsed.command == "import":
            return cmd_import(config, parsed.file, parsed.reason_id)
        elif parsed.command == "status":
            return cmd_status(config, parsed.start, parsed.end)
        elif parsed.command == "files":
            return cmd_files(config)
        elif parsed.command == "reasons":
            return cmd_reasons(config)
        elif parsed.command == "catalog":
            if parsed.catalog_command == "load":
                return cmd_catalog_load(config, parsed.file)
            elif parsed.catalog_command == "search":
                return cmd_catalog_search(config, parsed.term, parsed.limit)
            elif parsed.catalog_command == "delete":
                return cmd_catalog_delete(config, parsed.code)
            print("Usage: inventory-loss catalog {load,search,delete} ...")
            return 1
        else:
            parser.print_help()
            return 1
    except (LossLedgerError, ConfigValidationError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
