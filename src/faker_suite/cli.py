"""
Command line interface.

Runs the generators against a host platform. Without a wired-in platform the
commands use the in-memory demo store, which can be exported to CSV with
--output.

Usage:
    faker-suite --seed 42 customer --count 20 --with-addresses --address-count 2
    faker-suite order --count 50 --customer-type guest --with-invoice --tag load-test
    faker-suite --output data/demo order --count 10 --sku TSHIRT-001,MUG-002
    faker-suite cron
"""

import logging
import random
import sys
from typing import Optional

import click
from tqdm import tqdm

from .cron import ScheduledGeneration
from .exceptions import PlatformError
from .generators.customer import CustomerGenerator
from .generators.order import OrderGenerator
from .platform.catalog import build_demo_platform
from .providers import FakerPool
from .schemas import CustomerType, GeneratorConfig, OrderStatus, ProductType
from .settings import SuiteSettings

logger = logging.getLogger(__name__)

SUMMARY_SAMPLE_SIZE = 10


def _export(platform, output: str) -> None:
    files = platform.save_to_csv(output)
    for name, path in files.items():
        click.echo(f"📄 Saved {name} to {path}")


def _disabled(settings: SuiteSettings) -> bool:
    if settings.enabled:
        return False
    click.secho("❌ Faker Suite is disabled. Enable it in configuration.", fg="red", err=True)
    return True


@click.group()
@click.option('--seed', '-s', type=int, default=None, help='Random seed for reproducibility')
@click.option('--output', '-o', default=None, help='Export the demo store data to CSV files in this directory')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, seed: Optional[int], output: Optional[str], verbose: bool):
    """Generate synthetic customers and orders for testing."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    ctx.ensure_object(dict)
    rng = random.Random(seed)
    ctx.obj.setdefault("rng", rng)
    ctx.obj.setdefault("fakers", FakerPool(ctx.obj["rng"]))
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = SuiteSettings()
    if "platform" not in ctx.obj:
        ctx.obj["platform"] = build_demo_platform(seed)

    if output:
        platform = ctx.obj["platform"]
        if hasattr(platform, "save_to_csv"):
            ctx.call_on_close(lambda: _export(platform, output))
        else:
            logger.warning("The configured platform does not support CSV export")


@cli.command()
@click.option('--count', '-c', default=1, type=click.IntRange(min=0), help='Number of customers to generate')
@click.option('--website', '-w', type=int, default=None, help='Website ID')
@click.option('--store', type=int, default=None, help='Store ID')
@click.option('--locale', '-l', default=None, help='Locale for fake data (e.g. en_US, de_DE)')
@click.option('--group', '-g', type=int, default=None, help='Customer group ID')
@click.option('--with-addresses', '-a', is_flag=True, help='Generate addresses for customers')
@click.option('--address-count', default=1, type=click.IntRange(min=0), help='Number of addresses per customer')
@click.pass_context
def customer(ctx, count, website, store, locale, group, with_addresses, address_count):
    """
    Generate customer accounts.

    Example:
        faker-suite customer --count 10 --with-addresses --address-count 2
    """
    settings = ctx.obj["settings"]
    if _disabled(settings):
        ctx.exit(1)

    generator = CustomerGenerator(
        ctx.obj["platform"], settings, rng=ctx.obj["rng"], fakers=ctx.obj["fakers"]
    )

    config = GeneratorConfig(
        website_id=website,
        store_id=store,
        locale=locale,
        attributes={"group_id": group} if group is not None else {},
        options={"with_addresses": with_addresses, "address_count": address_count},
    )

    errors = generator.validate(config)
    if errors:
        click.secho("❌ Configuration validation failed:", fg="red", err=True)
        for error in errors:
            click.echo(f"  - {error}", err=True)
        ctx.exit(1)

    suffix = f" with {address_count} addresses each" if with_addresses else ""
    click.echo(f"👥 Generating {count} customers{suffix}...")

    successful = []
    failed = []
    for i in tqdm(range(count), desc="Customers", file=sys.stderr):
        result = generator.generate(config)
        if result.success:
            successful.append(result.entity)
        else:
            failed.append((i + 1, "; ".join(result.errors)))

    click.echo(f"\n✅ Successfully created: {len(successful)} customers")
    if failed:
        click.echo(f"❌ Failed: {len(failed)} customers")

    if successful:
        click.echo("\nSample of created customers:")
        click.echo(f"{'ID':<8}{'Email':<45}Name")
        for created in successful[:SUMMARY_SAMPLE_SIZE]:
            click.echo(f"{created.id:<8}{created.email:<45}{created.full_name}")
        if len(successful) > SUMMARY_SAMPLE_SIZE:
            click.echo(f"... and {len(successful) - SUMMARY_SAMPLE_SIZE} more")

    if failed:
        click.secho("\nFailed generations:", fg="red")
        for index, error in failed:
            click.echo(f"  - Customer #{index}: {error}")
        ctx.exit(1)


@cli.command()
@click.option('--count', '-c', default=10, type=click.IntRange(min=0), help='Number of orders to generate')
@click.option('--store', type=int, default=None, help='Store ID')
@click.option('--sku', 'skus', default=None, help='Comma-separated product SKUs')
@click.option('--customer-type', '-t', default=CustomerType.RANDOM.value,
              help='Customer type: random, existing, new, guest')
@click.option('--locale', '-l', default=None, help='Locale for fake data')
@click.option('--tag', default=None, help='Tag to identify test orders (added to order comments)')
@click.option('--payment-method', default=None, help='Payment method code (e.g. checkmo)')
@click.option('--shipping-method', default=None, help='Shipping method code (e.g. flatrate_flatrate)')
@click.option('--product-type', type=click.Choice([t.value for t in ProductType]), default=None,
              help='Only use products of this type')
@click.option('--item-count', type=click.IntRange(min=0), default=0, help='Distinct products per order, 0 for random')
@click.option('--currency', default=None, help='Order currency code')
@click.option('--with-invoice', is_flag=True, help='Always create an invoice')
@click.option('--with-shipment', is_flag=True, help='Always create a shipment')
@click.option('--with-discount', is_flag=True, help='Apply a random discount')
@click.option('--with-tax-exempt', is_flag=True, help='Create tax-exempt orders')
@click.option('--partial-invoice', is_flag=True, help='Invoice only part of the ordered quantities')
@click.option('--multi-address', is_flag=True, help='Use different billing and shipping addresses')
@click.option('--order-status', type=click.Choice([s.value for s in OrderStatus]), default=None,
              help='Target order status after creation')
@click.pass_context
def order(ctx, count, store, skus, customer_type, locale, tag, payment_method, shipping_method,
          product_type, item_count, currency, with_invoice, with_shipment, with_discount,
          with_tax_exempt, partial_invoice, multi_address, order_status):
    """
    Generate orders.

    Example:
        faker-suite order --count 20 --customer-type guest --with-invoice --tag smoke
    """
    settings = ctx.obj["settings"]
    platform = ctx.obj["platform"]
    if _disabled(settings):
        ctx.exit(1)

    try:
        store_id = store if store is not None else platform.get_default_store().id
        platform.get_store(store_id)
    except PlatformError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        ctx.exit(1)

    if locale:
        store_settings = settings.for_store(store_id)
        if not store_settings.is_locale_allowed(locale):
            click.secho(f"❌ Locale not allowed: {locale}", fg="red", err=True)
            click.echo(f"Allowed locales: {', '.join(store_settings.allowed_locales)}", err=True)
            ctx.exit(1)

    valid_types = [t.value for t in CustomerType]
    if customer_type not in valid_types:
        click.secho(f"❌ Invalid customer type: {customer_type}", fg="red", err=True)
        click.echo(f"Valid types: {', '.join(valid_types)}", err=True)
        ctx.exit(1)

    click.echo(f"🛒 Generating {count} orders...")
    if tag:
        click.echo(f"🏷️  Tag: {tag}")

    config = GeneratorConfig(store_id=store_id, locale=locale)
    config.set_option("count", count).set_option("customer_type", customer_type)
    if tag:
        config.set_option("order_comment", f"Test Order - Tag: {tag}")
        config.set_option("tag", tag)
    if skus:
        config.set_option("product_skus", skus)
    if payment_method:
        config.set_option("payment_method", payment_method)
    if shipping_method:
        config.set_option("shipping_method", shipping_method)
    if product_type:
        config.set_option("product_type", product_type)
    if item_count:
        config.set_option("item_count", item_count)
    if currency:
        config.set_option("currency", currency)
    if with_discount:
        config.set_option("with_discount", True)
    if with_tax_exempt:
        config.set_option("tax_exempt", True)
    if partial_invoice:
        config.set_option("partial_invoice", True)
    if multi_address:
        config.set_option("multi_address", True)
    if order_status:
        config.set_option("order_status", order_status)
    if with_invoice:
        config.set_option("force_invoice", True)
    if with_shipment:
        config.set_option("force_shipment", True)

    generator = OrderGenerator(
        platform, settings, rng=ctx.obj["rng"], fakers=ctx.obj["fakers"], show_progress=True
    )
    result = generator.generate(config)

    metadata = result.metadata
    generated = metadata.get("total_generated", 0)
    failed = metadata.get("total_failed", 0)

    click.echo("\n✨ Order generation completed!")
    click.echo(f"Success: {generated}, Failed: {failed}")

    if generated and metadata.get("orders"):
        click.echo("Created orders:")
        for created in metadata["orders"]:
            line = f"  - {created['increment_id']} (ID: {created['id']})"
            if tag:
                line += f" [{tag}]"
            click.echo(line)

    if result.errors:
        click.secho("Failures:", fg="red")
        for error in result.errors:
            click.echo(f"  - {error}")
        ctx.exit(1)


@cli.command()
@click.pass_context
def cron(ctx):
    """Run the scheduled generation job once."""
    settings = ctx.obj["settings"]
    platform = ctx.obj["platform"]
    rng = ctx.obj["rng"]
    fakers = ctx.obj["fakers"]

    customer_generator = CustomerGenerator(platform, settings, rng=rng, fakers=fakers)
    order_generator = OrderGenerator(
        platform, settings, rng=rng, fakers=fakers, customer_generator=customer_generator
    )
    summary = ScheduledGeneration(settings, customer_generator, order_generator).execute()

    if summary["skipped"]:
        click.echo("⏸️  Scheduled generation is disabled (enabled / cron_enabled settings)")
        return

    click.echo(f"👥 Customers: {summary['customers_generated']} generated, {summary['customers_failed']} failed")
    click.echo(f"🛒 Orders: {summary['orders_generated']} generated, {summary['orders_failed']} failed")


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
