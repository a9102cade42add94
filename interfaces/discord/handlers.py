from __future__ import annotations

import logging

import discord
from discord.ext import commands

from application.services import (
    ExternalContext,
    deactivate_player,
    get_leaderboard,
    reactivate_player,
    register_from_channel,
    resolve_channel_player,
)
from application.sessions import (
    abandon_session,
    end_session,
    get_active_session,
    get_player_sessions,
    start_session,
)
from domain.errors import GamingError
from infrastructure.repositories import Repositories
from interfaces.commands import (
    error_reply,
    format_game_list,
    format_history,
    format_leaderboard,
    format_player,
    format_session,
    parse_finish_args,
    parse_game_type,
)

logger = logging.getLogger(__name__)

HISTORY_SIZE = 5


def _build_external_context(user: discord.abc.User) -> ExternalContext:
    """Create an `ExternalContext` from a Discord user."""

    return ExternalContext(
        provider="discord",
        provider_user_id=str(user.id),
        display_name=user.display_name or user.name,
    )


def create_discord_bot(repos: Repositories) -> commands.Bot:
    """
    Configure and return a Discord bot with behaviour analogous to
    the Telegram interface: registration, playing games and statistics.
    """

    intents = discord.Intents.default()
    intents.message_content = True

    # Disable the default help command so we can provide our own `!help`.
    bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

    async def current_player(ctx: commands.Context):
        result = resolve_channel_player(
            _build_external_context(ctx.author), repos.players, repos.identities
        )
        if not result.success:
            await ctx.send("Please `!register <email> <name>` first.")
            return None
        return result.player

    @bot.event
    async def on_ready():
        logger.info("Discord bot logged in as %s (id=%s)", bot.user, bot.user.id)

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, (commands.MissingRequiredArgument, commands.BadArgument)):
            await ctx.send("Missing or invalid arguments. Type !help for usage.")
            return
        if isinstance(error, commands.CommandNotFound):
            return
        logger.error("Command %s failed", ctx.command, exc_info=error)
        await ctx.send("Something went wrong.")

    @bot.command(name="start")
    async def start_cmd(ctx: commands.Context):
        await ctx.send(
            "Welcome to the arcade (Discord)!\n"
            "Use !register to create your player, then !play to start a game.\n"
            "Type !help to see available commands."
        )

    @bot.command(name="help")
    async def help_cmd(ctx: commands.Context):
        await ctx.send(
            "!register <email> <name>        - create your player\n"
            "!games                          - list the available games\n"
            "!play <game>                    - start a game by id or name\n"
            "!finish <score> <won|lost> ...  - report the result of your game\n"
            "!quit                           - abandon the running game\n"
            "!me                             - show your statistics\n"
            "!history                        - show your recent games\n"
            "!leaderboard                    - show the best players\n"
            "!deactivate, !reactivate        - pause or resume your account\n"
        )

    @bot.command(name="register")
    async def register_cmd(ctx: commands.Context, email: str, *, name: str):
        result = register_from_channel(
            _build_external_context(ctx.author),
            name,
            email,
            repos.players,
            repos.identities,
        )
        if not result.success:
            await ctx.send(error_reply(result))
            return
        await ctx.send(f"Welcome, {result.player.name}!")

    @bot.command(name="games")
    async def games_cmd(ctx: commands.Context):
        await ctx.send(format_game_list())

    @bot.command(name="play")
    async def play_cmd(ctx: commands.Context, *, game: str):
        try:
            game_type = parse_game_type(game)
        except GamingError as exc:
            await ctx.send(f"{exc.message}\n{format_game_list()}")
            return

        player = await current_player(ctx)
        if player is None:
            return
        result = start_session(player.id, game_type, repos.players, repos.sessions)
        if not result.success:
            await ctx.send(error_reply(result))
            return
        await ctx.send(
            f"{game_type.label} started. Good luck!\n"
            "Report your result with !finish <score> <won|lost> [key=value ...]"
        )

    @bot.command(name="finish")
    async def finish_cmd(ctx: commands.Context, *args: str):
        """
        !finish 500 won successful_deploys=9 cat_interventions=1
        """

        try:
            score, completed, game_data = parse_finish_args(args)
        except GamingError as exc:
            await ctx.send(exc.message)
            return

        player = await current_player(ctx)
        if player is None:
            return
        active = get_active_session(player.id, repos.sessions)
        if not active.success:
            await ctx.send("You have no game running.")
            return

        result = end_session(
            active.session.id,
            score,
            completed,
            game_data,
            repos.players,
            repos.sessions,
        )
        if not result.success:
            await ctx.send(error_reply(result))
            return
        await ctx.send(
            format_session(
                result.session, result.performance_rating, result.flagged_for_review
            )
        )

    @bot.command(name="quit")
    async def quit_cmd(ctx: commands.Context):
        player = await current_player(ctx)
        if player is None:
            return
        active = get_active_session(player.id, repos.sessions)
        if not active.success:
            await ctx.send("You have no game running.")
            return

        result = abandon_session(
            active.session.id, player.id, repos.players, repos.sessions
        )
        if not result.success:
            await ctx.send(error_reply(result))
            return
        await ctx.send("Game abandoned.")

    @bot.command(name="me")
    async def me_cmd(ctx: commands.Context):
        player = await current_player(ctx)
        if player is not None:
            await ctx.send(format_player(player))

    @bot.command(name="history")
    async def history_cmd(ctx: commands.Context):
        player = await current_player(ctx)
        if player is None:
            return
        result = get_player_sessions(
            player.id, repos.players, repos.sessions, limit=HISTORY_SIZE
        )
        if not result.success:
            await ctx.send(error_reply(result))
            return
        await ctx.send(format_history(result.sessions))

    @bot.command(name="leaderboard")
    async def leaderboard_cmd(ctx: commands.Context):
        result = get_leaderboard(repos.players)
        await ctx.send(format_leaderboard(result.players))

    @bot.command(name="deactivate")
    async def deactivate_cmd(ctx: commands.Context):
        player = await current_player(ctx)
        if player is None:
            return
        result = deactivate_player(player.id, repos.players)
        if not result.success:
            await ctx.send(error_reply(result))
            return
        await ctx.send("Your account is paused. Use !reactivate to come back.")

    @bot.command(name="reactivate")
    async def reactivate_cmd(ctx: commands.Context):
        player = await current_player(ctx)
        if player is None:
            return
        result = reactivate_player(player.id, repos.players)
        if not result.success:
            await ctx.send(error_reply(result))
            return
        await ctx.send("Welcome back!")

    return bot
