from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from chat.gateway import CompletionGateway
from chat.records import Role, Theme
from chat.session import RenderSink, SessionController, SessionError
from chat.storage import FileKeyValueStore, PersistenceAdapter

INPUT_CHAR_ADVISORY = 4000

HELP_TEXT = """Commands
/clear            Clear the conversation
/export [PATH]    Save the conversation as JSON
/model NAME       Switch the completion model
/theme light|dark Switch the colour theme
/quit             Leave the chat
"""


class TerminalRenderSink(RenderSink):
    """Writes each appended message to the command's output stream."""

    def __init__(self, stdout, style):
        self.stdout = stdout
        self.style = style

    def on_append(self, message):
        avatar = "👤" if message.role == Role.USER else "🤖"
        stamp = timezone.localtime(message.timestamp).strftime("%H:%M:%S")
        header = f"{avatar} {stamp}"
        self.stdout.write(self.style.NOTICE(header) if message.role == Role.USER else self.style.SUCCESS(header))
        self.stdout.write(message.content)
        self.stdout.write("")


class Command(BaseCommand):
    help = "Chat with the completion model from the terminal."

    def add_arguments(self, parser):
        parser.add_argument("--store", default=settings.CHAT_STORE_PATH, help="JSON file holding chat history")
        parser.add_argument("--endpoint", default=settings.CHAT_PROXY_URL, help="Chat proxy URL")
        parser.add_argument("--model", help="Model to select before chatting")
        parser.add_argument("--yes", action="store_true", help="Do not ask before clearing the chat")

    def handle(self, *args, **options):
        self.assume_yes = options["yes"]
        controller = SessionController(
            gateway=CompletionGateway(options["endpoint"], timeout=settings.CHAT_GATEWAY_TIMEOUT),
            persistence=PersistenceAdapter(FileKeyValueStore(options["store"])),
            sink=TerminalRenderSink(self.stdout, self.style),
        )
        if options["model"]:
            controller.select_model(options["model"])
        self.stdout.write(f"Model: {controller.preferences.model} (type /help for commands)")

        while True:
            try:
                line = input("> ")
            except EOFError:
                break
            if line.strip() == "/quit":
                break
            if line.startswith("/"):
                self.run_command(controller, line.strip())
                continue
            if len(line) > INPUT_CHAR_ADVISORY:
                self.stdout.write(self.style.WARNING(f"{len(line)} / {INPUT_CHAR_ADVISORY}"))
            try:
                controller.submit(line)
            except SessionError:
                continue

    def run_command(self, controller, line):
        name, _, argument = line.partition(" ")
        argument = argument.strip()
        if name == "/help":
            self.stdout.write(HELP_TEXT)
        elif name == "/clear":
            if self.assume_yes or self.confirm("Are you sure you want to clear the chat? [y/N] "):
                try:
                    controller.reset()
                except SessionError as exc:
                    self.stderr.write(str(exc))
                    return
                self.stdout.write("Chat cleared.")
        elif name == "/export":
            path = Path(argument or controller.export_filename())
            try:
                path.write_text(controller.export(), encoding="utf-8")
            except OSError as exc:
                self.stderr.write(f"Could not export chat: {exc}")
                return
            self.stdout.write(f"Exported chat to {path}")
        elif name == "/model" and argument:
            controller.select_model(argument)
            self.stdout.write(f"Model: {argument}")
        elif name == "/theme" and argument in Theme.values:
            controller.set_theme(argument)
            self.stdout.write(f"Theme: {argument}")
        else:
            self.stderr.write(f"Unknown command: {line}")

    def confirm(self, prompt):
        try:
            return input(prompt).strip().lower().startswith("y")
        except EOFError:
            return False
