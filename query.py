#!/usr/bin/env python3
"""Ad hoc recipe generator.

Generate one recipe from the command line without any UI.

Usage:
    python query.py "chicken, rice, 2 cups broth"
    python query.py --mode use-what-i-have "eggs, spinach, feta"
    python query.py --servings 2 --time 20 --cuisine Italian "pasta, tomatoes"
    python query.py --hint "no oven" --save "potatoes, leeks"
    python query.py --debug "tofu, broccoli"  # Show full recipe JSON

Features:
- Free-text ingredients parsed with the ingredients model
- Live pipeline progress from the event bus
- Recipe rendered with rich (ingredients, shopping list, steps)
- Optional save to the local recipe store
- Ctrl+C cancels the in-flight model call
"""

import asyncio
import sys

from rich.console import Console
from rich.table import Table

from src.models.errors import PipelineCancelledError, RecipePipelineError
from src.models.models import GenerationMode, GenerationRequest, Recipe
from src.services.events import AIEvent
from src.services.factory import Services, initialize_services
from src.utils.cancellation import CancellationToken
from src.utils.config import Config
from src.utils.fractions import decimal_to_fraction
from src.utils.logger import logger

console = Console()

PROGRESS_MESSAGES = {
    AIEvent.RECIPE_PROMPT_START: "Preparing recipe prompt...",
    AIEvent.RECIPE_GENERATION_START: "Generating recipe...",
    AIEvent.RECIPE_GENERATION_COMPLETE: "Recipe generated",
    AIEvent.IMAGE_PROMPT_START: "Writing image prompt...",
    AIEvent.IMAGE_GENERATION_START: "Generating image...",
    AIEvent.IMAGE_GENERATION_COMPLETE: "Image ready",
}

USAGE = (
    'Usage: python query.py [--mode use-what-i-have|suggest] [--servings N] [--time MINUTES] '
    '[--cuisine NAME] [--hint TEXT] [--save] [--debug] "<ingredients>"'
)


def subscribe_progress(services: Services) -> list:
    """Print a line per pipeline event. Returns the unsubscribe callables."""
    unsubscribers = []
    for event, message in PROGRESS_MESSAGES.items():
        def _print(payload, message=message):
            suffix = f" [dim]({payload['tier']} prompt)[/dim]" if isinstance(payload, dict) and "tier" in payload else ""
            console.print(f"[cyan]•[/cyan] {message}{suffix}")

        unsubscribers.append(services.events.subscribe(event, _print))

    def _print_error(payload):
        console.print(f"[yellow]! {payload.get('stage', 'pipeline')} error: {payload['message']}[/yellow]")

    unsubscribers.append(services.events.subscribe(AIEvent.ERROR, _print_error))
    return unsubscribers


def render_recipe(recipe: Recipe) -> None:
    """Pretty-print a recipe."""
    console.print(f"\n[bold green]{recipe.name}[/bold green]")
    if recipe.description:
        console.print(recipe.description)
    console.print(
        f"[dim]Serves {recipe.recipe_yield} · prep {recipe.prep_time} · cook {recipe.cook_time} · "
        f"total {recipe.total_time} · {recipe.recipe_cuisine or 'International'}[/dim]\n"
    )

    ingredients = Table(title="Ingredients", show_header=True, header_style="bold")
    ingredients.add_column("Qty", justify="right")
    ingredients.add_column("Unit")
    ingredients.add_column("Ingredient")
    for ingredient in recipe.ingredients.used:
        ingredients.add_row(decimal_to_fraction(ingredient.quantity), ingredient.unit, ingredient.name)
    console.print(ingredients)

    if recipe.shopping_list.items:
        shopping = Table(title=f"Shopping list ({recipe.shopping_list.total_items})", show_header=True)
        shopping.add_column("Item")
        shopping.add_column("Buy", justify="right")
        for item in recipe.shopping_list.items:
            shopping.add_row(item.name, f"{decimal_to_fraction(item.purchase_quantity)} {item.purchase_unit}".strip())
        console.print(shopping)

    console.print("\n[bold]Instructions[/bold]")
    for index, step in enumerate(recipe.recipe_instructions, start=1):
        console.print(f"  {index}. {step.text}")

    if recipe.image:
        image = recipe.image[0]
        console.print(f"\n[dim]Image: {image if not image.startswith('data:') else image[:40] + '...'}[/dim]")


async def generate(
    ingredient_text: str,
    mode: GenerationMode,
    servings: str,
    max_time: int,
    cuisines: list,
    hint: str,
    save: bool,
    debug: bool,
) -> None:
    config = Config()
    services = initialize_services(config)
    subscribe_progress(services)
    token = CancellationToken()

    try:
        parsed = await services.ingredient_parser.parse(ingredient_text, cancel_token=token)
        if not parsed:
            console.print("[red]✗ Error: No ingredients provided[/red]")
            sys.exit(1)
        logger.info(f"Ingredients: {', '.join(item.name for item in parsed)}")

        request = GenerationRequest(
            ingredients=[item.name for item in parsed],
            servings=servings,
            cuisines=cuisines,
            max_time_minutes=max_time,
            hint=hint,
            mode=mode,
        )
        try:
            recipe = await services.recipe_generator.generate_recipe(request, cancel_token=token)
        except asyncio.CancelledError:
            token.cancel("Interrupted by user")
            raise

        if debug:
            console.print("[bold cyan]Debug Mode: Full Recipe[/bold cyan]")
            console.print("[dim]" + "=" * 60 + "[/dim]")
            console.print_json(data=recipe.to_json_dict())
            console.print("[dim]" + "=" * 60 + "[/dim]")

        render_recipe(recipe)

        if save:
            stored = services.store.save(recipe)
            console.print(f"\n[green]✓ Saved as {stored.id}[/green]")
    finally:
        await services.close()


def parse_args(argv: list) -> dict:
    """Manual flag parsing: flags first, remaining words are the ingredients."""
    options = {
        "mode": GenerationMode.SUGGEST,
        "servings": "4",
        "max_time": 30,
        "cuisines": [],
        "hint": "",
        "save": False,
        "debug": False,
    }
    valued_flags = {"--mode", "--servings", "--time", "--cuisine", "--hint"}
    index = 1
    while index < len(argv) and argv[index].startswith("--"):
        flag = argv[index]
        if flag == "--save":
            options["save"] = True
        elif flag == "--debug":
            options["debug"] = True
        elif flag in valued_flags:
            index += 1
            if index >= len(argv):
                print(f"Error: {flag} flag requires a value")
                sys.exit(1)
            value = argv[index]
            if flag == "--mode":
                options["mode"] = GenerationMode(value)
            elif flag == "--servings":
                options["servings"] = value
            elif flag == "--time":
                options["max_time"] = int(value)
            elif flag == "--cuisine":
                options["cuisines"].append(value)
            else:
                options["hint"] = value
        else:
            print(f"Unknown flag: {flag}")
            sys.exit(1)
        index += 1

    if index >= len(argv):
        print("Error: No ingredients provided")
        print(USAGE)
        sys.exit(1)

    options["ingredient_text"] = " ".join(argv[index:])
    return options


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(USAGE)
        print("")
        print("Examples:")
        print('  python query.py "chicken, rice, 2 cups broth"')
        print('  python query.py --mode use-what-i-have "eggs, spinach, feta"')
        print('  python query.py --servings 2 --time 20 --cuisine Italian "pasta, tomatoes"')
        sys.exit(1)

    try:
        options = parse_args(sys.argv)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        asyncio.run(generate(**options))
    except KeyboardInterrupt:
        logger.info("\nGeneration interrupted by user.")
        sys.exit(0)
    except PipelineCancelledError as e:
        logger.info(f"Generation cancelled: {e}")
        sys.exit(0)
    except (RecipePipelineError, ValueError) as e:
        logger.error(f"Recipe generation failed: {e}")
        console.print(f"[red]✗ Error: {e}[/red]")
        sys.exit(1)
