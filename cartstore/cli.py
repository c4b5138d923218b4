# cartstore/cli.py
import argparse
import sys
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .sdk import StoreAPIError, StoreClient

console = Console()


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]], title: str = "Products") -> None:
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(title=title, box=box.ROUNDED, header_style="bold cyan", show_lines=True)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Code")
    table.add_column("Price", justify="right")
    table.add_column("Stock", justify="right")
    table.add_column("Category")
    table.add_column("Status")

    for p in products:
        table.add_row(
            str(p.get("id", "N/A")),
            p.get("title", "N/A"),
            p.get("code", "N/A"),
            f"${p.get('price', 0):.2f}",
            str(p.get("stock", 0)),
            p.get("category", "N/A"),
            "[green]on[/green]" if p.get("status") else "[red]off[/red]",
        )
    console.print(table)


def show_cart(cart: Dict[str, Any]) -> None:
    items = cart.get("products", [])
    title = f"Cart {cart.get('id', '?')}"
    if not items:
        console.print(Panel("Cart is empty", title=title, style="blue"))
        return

    table = Table(box=box.ROUNDED, header_style="bold blue", show_lines=True)
    table.add_column("Product", style="bold")
    table.add_column("Qty", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Subtotal", justify="right")

    total = 0.0
    for it in items:
        product = it.get("product")
        qty = it.get("quantity", 0)
        if not isinstance(product, dict):
            table.add_row(f"[red]Missing product: {product}[/red]", str(qty), "-", "-")
            continue
        subtotal = product.get("price", 0) * qty
        total += subtotal
        table.add_row(product.get("title", "?"), str(qty), f"${product.get('price', 0):.2f}", f"${subtotal:.2f}")

    console.print(Panel(table, title=f"{title} - Total: ${total:.2f}", border_style="blue"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cartstore", description="cart-store client")
    parser.add_argument("--url", default="http://127.0.0.1:8080", help="Base URL of the API")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Run the API server")

    lp = subparsers.add_parser("list-products", help="List products")
    lp.add_argument("--query", help="category, true/false or status:true/false")
    lp.add_argument("--sort", choices=["asc", "desc"], help="Sort by price")
    lp.add_argument("--page", type=int)
    lp.add_argument("--limit", type=int)

    subparsers.add_parser("create-cart", help="Create an empty cart")

    vc = subparsers.add_parser("view-cart", help="View cart contents")
    vc.add_argument("--cart-id", required=True)

    add = subparsers.add_parser("add-to-cart", help="Add a product to a cart")
    add.add_argument("--cart-id", required=True)
    add.add_argument("--product-id", required=True)
    add.add_argument("--qty", type=int, default=1)

    rm = subparsers.add_parser("remove-from-cart", help="Remove a product from a cart")
    rm.add_argument("--cart-id", required=True)
    rm.add_argument("--product-id", required=True)

    cc = subparsers.add_parser("clear-cart", help="Remove every product from a cart")
    cc.add_argument("--cart-id", required=True)
    return parser


def main(argv: Optional[List[str]] = None, client: Optional[StoreClient] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        from .main import run

        run()
        return 0

    c = client or StoreClient(base_url=args.url)
    try:
        if args.command == "list-products":
            page = c.list_products(args.query, args.sort, args.page, args.limit)
            show_products(page["payload"], title=f"Products - page {page['page']}/{page['totalPages']}")
        elif args.command == "create-cart":
            cart = c.create_cart()
            console.print(f"Created cart [green]{cart['id']}[/green]")
        elif args.command == "view-cart":
            show_cart(c.view_cart(args.cart_id))
        elif args.command == "add-to-cart":
            show_cart(c.add_to_cart(args.cart_id, args.product_id, args.qty))
        elif args.command == "remove-from-cart":
            show_cart(c.remove_from_cart(args.cart_id, args.product_id))
        elif args.command == "clear-cart":
            show_cart(c.clear_cart(args.cart_id))
    except StoreAPIError as e:
        console.print(f"[bold red]{e}[/bold red]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
