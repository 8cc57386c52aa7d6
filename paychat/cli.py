"""
paychat CLI
Interactive terminal chat against a pay-per-request completions endpoint
"""

import asyncio
import sys
from datetime import datetime
from typing import List, Optional

import httpx
import structlog
from rich.console import Console
from rich.table import Table

from paychat.chat import Chat, ChatSession, ERROR_REPLY, FileChatStore
from paychat.config import ChatClientConfig, get_client_config
from paychat.logging_config import configure_logging
from paychat.payments import LocalAccountSigner, PaymentAmountExceeded, wrap_with_payment

logger = structlog.get_logger()
console = Console()

HELP_TEXT = "Commands: /new, /history, /open <id>, /delete <id>, /quit. Anything else is sent as a message."


def format_timestamp(timestamp_ms: int) -> str:
    """Short local date like 'Mar 04, 09:15 PM'"""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%b %d, %I:%M %p")


class ChatCLI:
    """
    Terminal front end:
    1. Sending messages and streaming replies
    2. Browsing, reopening and deleting saved chats
    """

    def __init__(self, config: Optional[ChatClientConfig] = None):
        self.config = config or get_client_config()
        self.client = httpx.AsyncClient(timeout=self.config.request_timeout)
        self.signer = LocalAccountSigner(self.config.wallet_private_key)

        fetch = wrap_with_payment(
            self.client,
            self.signer.address,
            self.signer,
            self.config.max_payment_amount,
        )
        self.session = ChatSession(
            fetch=fetch,
            store=FileChatStore(self.config.chat_store_dir),
            completions_url=self.config.completions_url,
            model=self.config.model,
        )

    async def send_message(self, text: str) -> None:
        """Send one message and print the reply as it streams"""
        console.print("[bold blue]assistant>[/bold blue] ", end="")
        try:
            async for token in self.session.send(text):
                console.print(token, end="", markup=False, highlight=False)
            console.print()
        except PaymentAmountExceeded as e:
            console.print()
            console.print(f"[red]{ERROR_REPLY}[/red] [dim]({e.message})[/dim]")
        except Exception as e:
            console.print()
            logger.error("chat_message_failed", error_type=type(e).__name__, error=str(e))
            console.print(f"[red]{ERROR_REPLY}[/red]")

    def display_history(self, chats: List[Chat]) -> None:
        """Display saved chats in a formatted table"""
        if not chats:
            console.print("[yellow]No saved chats[/yellow]")
            return

        table = Table(title="Chat History", show_header=True, header_style="bold magenta")

        table.add_column("Chat ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Updated", style="green")
        table.add_column("Messages", justify="right", style="blue")

        for chat in chats:
            marker = " *" if chat.id == self.session.chat_id else ""
            table.add_row(
                chat.id + marker,
                chat.title,
                format_timestamp(chat.timestamp),
                str(len(chat.messages)),
            )

        console.print(table)

    def display_messages(self) -> None:
        """Print the current conversation"""
        for message in self.session.messages:
            style = "bold green" if message.role == "user" else "bold blue"
            console.print(f"[{style}]{message.role}>[/{style}] ", end="")
            console.print(message.content, markup=False, highlight=False)

    async def handle_command(self, command: str) -> bool:
        """Run a slash command. Returns False when the CLI should exit."""
        name, _, arg = command.partition(" ")
        arg = arg.strip()

        if name in ("/quit", "/exit"):
            return False

        elif name == "/new":
            self.session.new_chat()
            self.display_messages()

        elif name == "/history":
            self.display_history(await self.session.history())

        elif name == "/open" and arg:
            try:
                await self.session.open_chat(arg)
                self.display_messages()
            except (KeyError, ValueError):
                console.print(f"[red]Chat not found: {arg}[/red]")

        elif name == "/delete" and arg:
            try:
                await self.session.delete_chat(arg)
                console.print(f"[green]Deleted chat {arg}[/green]")
            except ValueError:
                console.print(f"[red]Chat not found: {arg}[/red]")

        else:
            console.print(f"[yellow]Unknown command: {command}[/yellow]")
            console.print(HELP_TEXT)

        return True

    async def interactive_mode(self):
        """Run interactive CLI mode"""
        console.print("[bold cyan]paychat[/bold cyan]")
        console.print(f"Paying from {self.signer.address} (max {self.config.max_payment_amount} base units per request)")
        console.print(HELP_TEXT + "\n")
        self.display_messages()

        while True:
            try:
                line = console.input("[bold green]you>[/bold green] ").strip()
                if not line:
                    continue

                if line.startswith("/"):
                    if not await self.handle_command(line):
                        break
                else:
                    await self.send_message(line)

            except KeyboardInterrupt:
                console.print("\n[yellow]Use /quit to exit[/yellow]")
            except EOFError:
                break

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()


async def main():
    """Main entry point for the chat CLI"""
    config = get_client_config()
    configure_logging(config.log_level, config.log_format)

    if not config.wallet_private_key:
        console.print("[red]WALLET_PRIVATE_KEY is not set[/red]")
        sys.exit(1)

    cli = ChatCLI(config)
    try:
        if len(sys.argv) > 1 and sys.argv[1] == "history":
            cli.display_history(await cli.session.history())
        elif len(sys.argv) > 1:
            await cli.send_message(" ".join(sys.argv[1:]))
        else:
            await cli.interactive_mode()
    finally:
        await cli.close()


if __name__ == "__main__":
    asyncio.run(main())
