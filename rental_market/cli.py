#!/usr/bin/env python3
"""
Command-line front end for the Rental Market API.
Covers account session handling, the listing browser and the add/edit listing forms.
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from rental_market.client import ListingClient, ListingClientError
from rental_market.schemas.property import PROPERTY_TYPES

logger = logging.getLogger(__name__)

MAX_IMAGES = 5

FIELD_OPTIONS = (
    ("title", str, "Listing title"),
    ("description", str, "Listing description"),
    ("type", str, f"Property category, e.g. {', '.join(PROPERTY_TYPES[:4])}"),
    ("location", str, "Location/address"),
    ("price", float, "Price per month"),
    ("bedrooms", int, "Number of bedrooms"),
    ("bathrooms", int, "Number of bathrooms"),
    ("area", float, "Area"),
)


def format_property(prop: Mapping[str, Any], client: ListingClient) -> str:
    """Multi-line summary of one listing."""
    lines = [
        f"{prop['title']}  [{prop['id']}]",
        f"  {prop['type']} in {prop['location']}, {prop['price']:g}/month",
        f"  {prop['bedrooms']} bed, {prop['bathrooms']} bath, area {prop['area']:g}",
        f"  owner {prop['userId']}, listed {prop['createdAt']}",
    ]
    images = prop.get("images") or []
    if images:
        lines.append(f"  {len(images)} image(s), primary: {client.primary_image_url(prop)}")
    else:
        lines.append("  no images")
    return "\n".join(lines)


def _collect_fields(args: argparse.Namespace) -> Dict[str, Any]:
    return {name: getattr(args, name) for name, _, _ in FIELD_OPTIONS if getattr(args, name) is not None}


def cmd_register(client: ListingClient, args: argparse.Namespace) -> None:
    result = client.register(args.name, args.email, args.password)
    print(f"Registered and logged in as {result['user']['name']} <{result['user']['email']}>")


def cmd_login(client: ListingClient, args: argparse.Namespace) -> None:
    result = client.login(args.email, args.password)
    print(f"Logged in as {result['user']['name']} <{result['user']['email']}>")


def cmd_logout(client: ListingClient, args: argparse.Namespace) -> None:
    client.logout()
    print("Logged out")


def cmd_whoami(client: ListingClient, args: argparse.Namespace) -> None:
    if not client.session.is_authenticated:
        print("Not logged in")
        return
    user = client.me()
    print(f"{user['name']} <{user['email']}> (id {user['id']})")


def cmd_list(client: ListingClient, args: argparse.Namespace) -> None:
    if args.mine or args.user:
        properties = client.list_user_properties(args.user)
    else:
        properties = client.list_properties()

    if not properties:
        print("No properties found.")
        return
    for prop in properties:
        print(format_property(prop, client))
        print()


def cmd_show(client: ListingClient, args: argparse.Namespace) -> None:
    prop = client.get_property(args.property_id)
    print(format_property(prop, client))
    print()
    print(prop["description"])
    for path in prop.get("images") or []:
        print(f"  {client.image_url(path)}")


def cmd_add(client: ListingClient, args: argparse.Namespace) -> None:
    images = list(args.image)
    if len(images) > MAX_IMAGES:
        logger.warning(f"Only the first {MAX_IMAGES} of {len(images)} images will be uploaded")
        images = images[:MAX_IMAGES]

    prop = client.create_property(_collect_fields(args), images, user_id=args.user)
    print(f"Created property {prop['id']}")


def cmd_edit(client: ListingClient, args: argparse.Namespace) -> None:
    current = client.get_property(args.property_id)
    current_images: List[str] = current.get("images") or []

    for path in args.remove_image:
        if path not in current_images:
            logger.warning(f"{path} is not an image of this property")
    kept = [path for path in current_images if path not in args.remove_image]

    free_slots = MAX_IMAGES - len(kept)
    new_images = list(args.image)
    if len(new_images) > free_slots:
        logger.warning(f"Maximum {MAX_IMAGES} images allowed, only {max(free_slots, 0)} new image(s) will be uploaded")
        new_images = new_images[:max(free_slots, 0)]

    if args.remove_image and not new_images:
        logger.warning("Image removals only take effect together with new uploads")

    prop = client.update_property(args.property_id, _collect_fields(args), new_images, keep_images=kept)
    print(f"Updated property {prop['id']}")


def cmd_delete(client: ListingClient, args: argparse.Namespace) -> None:
    result = client.delete_property(args.property_id)
    print(result.get("message", "Property deleted"))


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn
    from rental_market.config import settings

    uvicorn.run(
        "rental_market.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload
    )


def cmd_init_db(args: argparse.Namespace) -> None:
    from rental_market.database import database
    from rental_market import models  # noqa: F401

    async def _create() -> None:
        await database.create_tables()
        await database.disconnect()

    asyncio.run(_create())
    print("Database tables created")


def _add_field_arguments(parser: argparse.ArgumentParser, required: bool) -> None:
    for name, kind, help_text in FIELD_OPTIONS:
        parser.add_argument(f"--{name}", type=kind, required=required, help=help_text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rental-market", description="Rental Market command-line client")
    parser.add_argument("--base-url", help="API base address (default: $RENTAL_MARKET_API_URL or http://localhost:8000)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    subparsers.add_parser("init-db", help="Create database tables")

    register_parser = subparsers.add_parser("register", help="Create an account and log in")
    register_parser.add_argument("--name", required=True)
    register_parser.add_argument("--email", required=True)
    register_parser.add_argument("--password", required=True)

    login_parser = subparsers.add_parser("login", help="Log in")
    login_parser.add_argument("--email", required=True)
    login_parser.add_argument("--password", required=True)

    subparsers.add_parser("logout", help="Forget the stored session")
    subparsers.add_parser("whoami", help="Show the logged-in user")

    list_parser = subparsers.add_parser("list", help="Browse listings")
    list_parser.add_argument("--mine", action="store_true", help="Only my listings")
    list_parser.add_argument("--user", help="Only listings of this user id")

    show_parser = subparsers.add_parser("show", help="Show one listing")
    show_parser.add_argument("property_id")

    add_parser = subparsers.add_parser("add", help="Add a listing")
    _add_field_arguments(add_parser, required=True)
    add_parser.add_argument("--image", action="append", default=[], help="Image file (repeatable, max 5)")
    add_parser.add_argument("--user", help="Owner id (defaults to the logged-in user)")

    edit_parser = subparsers.add_parser("edit", help="Edit a listing")
    edit_parser.add_argument("property_id")
    _add_field_arguments(edit_parser, required=False)
    edit_parser.add_argument("--image", action="append", default=[], help="New image file (repeatable)")
    edit_parser.add_argument("--remove-image", action="append", default=[], help="Current image path to drop")

    delete_parser = subparsers.add_parser("delete", help="Delete a listing")
    delete_parser.add_argument("property_id")

    return parser


CLIENT_COMMANDS: Dict[str, Callable[[ListingClient, argparse.Namespace], None]] = {
    "register": cmd_register,
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "list": cmd_list,
    "show": cmd_show,
    "add": cmd_add,
    "edit": cmd_edit,
    "delete": cmd_delete,
}


def main(argv: Optional[Sequence[str]] = None, client: Optional[ListingClient] = None) -> int:
    """Main CLI interface; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s"
    )

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "serve":
        cmd_serve(args)
        return 0
    if args.command == "init-db":
        cmd_init_db(args)
        return 0

    owns_client = client is None
    if client is None:
        client = ListingClient(base_url=args.base_url)
        client.session.load()

    try:
        CLIENT_COMMANDS[args.command](client, args)
    except ListingClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if owns_client:
            client.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
