from __future__ import annotations

import logging

import telebot
from telebot.types import InlineKeyboardButton, InlineKeyboardMarkup

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
    get_session,
    start_session,
)
from domain.errors import GamingError
from domain.game_types import GameType
from infrastructure.repositories import Repositories
from interfaces.commands import (
    error_reply,
    format_history,
    format_leaderboard,
    format_player,
    format_session,
    parse_finish_args,
    parse_game_type,
)
from interfaces.telegram.callback_data import (
    encode_end_confirmation,
    encode_game_choice,
    parse_end_confirmation,
    parse_game_choice,
)

logger = logging.getLogger(__name__)

HISTORY_SIZE = 5


def _build_external_context(user) -> ExternalContext:
    """Extract a channel-agnostic context object from a Telegram user."""

    display_name = " ".join(
        part for part in (user.first_name, user.last_name) if part
    )
    return ExternalContext(
        provider="telegram",
        provider_user_id=str(user.id),
        display_name=display_name,
    )


def create_telegram_bot(bot_token: str, repos: Repositories) -> telebot.TeleBot:
    """
    Configure and return a TeleBot instance wired to the application layer.

    This module contains only Telegram-specific concerns: parsing Telegram
    messages/callbacks and mapping them to/from application services.
    """

    bot = telebot.TeleBot(bot_token)

    def current_player(chat_id, user):
        result = resolve_channel_player(
            _build_external_context(user), repos.players, repos.identities
        )
        if not result.success:
            bot.send_message(chat_id, "Please /register <email> <name> first.")
            return None
        return result.player

    def launch(chat_id, user, game_type: GameType) -> None:
        player = current_player(chat_id, user)
        if player is None:
            return
        result = start_session(player.id, game_type, repos.players, repos.sessions)
        if not result.success:
            bot.send_message(chat_id, error_reply(result))
            return
        bot.send_message(
            chat_id,
            f"{game_type.label} started. Good luck!\n"
            "Report your result with /finish <score> <won|lost> [key=value ...]",
        )

    @bot.message_handler(commands=["start", "hello"])
    def handle_start(message):
        bot.send_message(
            message.chat.id,
            "Welcome to the arcade!\n"
            "Use /register to create your player, then /games to pick a game.\n"
            "Type /help to see available commands.",
        )

    @bot.message_handler(commands=["help"])
    def handle_help(message):
        bot.send_message(
            message.chat.id,
            "/register <email> <name>        - create your player\n"
            "/games                          - choose a game to play\n"
            "/play <game>                    - start a game by id or name\n"
            "/finish <score> <won|lost> ...  - report the result of your game\n"
            "/quit                           - abandon the running game\n"
            "/me                             - show your statistics\n"
            "/history                        - show your recent games\n"
            "/leaderboard                    - show the best players\n"
            "/deactivate, /reactivate        - pause or resume your account\n",
        )

    @bot.message_handler(commands=["register"])
    def handle_register(message):
        parts = message.text.split()
        if len(parts) < 3:
            bot.send_message(message.chat.id, "Usage: /register <email> <name>")
            return

        email, name = parts[1], " ".join(parts[2:])
        result = register_from_channel(
            _build_external_context(message.from_user),
            name,
            email,
            repos.players,
            repos.identities,
        )
        if not result.success:
            bot.send_message(message.chat.id, error_reply(result))
            return
        bot.send_message(message.chat.id, f"Welcome, {result.player.name}!")

    @bot.message_handler(commands=["games"])
    def handle_games(message):
        markup = InlineKeyboardMarkup(row_width=2)
        for game_type in GameType:
            markup.add(
                InlineKeyboardButton(
                    game_type.label, callback_data=encode_game_choice(game_type)
                )
            )
        bot.send_message(message.chat.id, "Choose a game", reply_markup=markup)

    @bot.callback_query_handler(func=lambda call: call.data.startswith("play:"))
    def handle_game_choice(call):
        try:
            game_type = parse_game_choice(call.data)
        except (ValueError, GamingError):
            bot.answer_callback_query(call.id, "Invalid selection.")
            return

        try:
            launch(call.message.chat.id, call.from_user, game_type)
        finally:
            bot.delete_message(call.message.chat.id, call.message.id)

    @bot.message_handler(commands=["play"])
    def handle_play(message):
        parts = message.text.split(maxsplit=1)
        if len(parts) < 2:
            bot.send_message(message.chat.id, "Please name a game, or use /games.")
            return
        try:
            game_type = parse_game_type(parts[1])
        except GamingError as exc:
            bot.send_message(message.chat.id, exc.message)
            return
        launch(message.chat.id, message.from_user, game_type)

    @bot.message_handler(commands=["finish"])
    def handle_finish(message):
        try:
            score, completed, game_data = parse_finish_args(message.text.split()[1:])
        except GamingError as exc:
            bot.send_message(message.chat.id, exc.message)
            return

        player = current_player(message.chat.id, message.from_user)
        if player is None:
            return
        active = get_active_session(player.id, repos.sessions)
        if not active.success:
            bot.send_message(message.chat.id, "You have no game running.")
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
            bot.send_message(message.chat.id, error_reply(result))
            return
        bot.send_message(
            message.chat.id,
            format_session(
                result.session, result.performance_rating, result.flagged_for_review
            ),
        )

    @bot.message_handler(commands=["quit"])
    def handle_quit(message):
        player = current_player(message.chat.id, message.from_user)
        if player is None:
            return
        active = get_active_session(player.id, repos.sessions)
        if not active.success:
            bot.send_message(message.chat.id, "You have no game running.")
            return

        session_id = str(active.session.id)
        markup = InlineKeyboardMarkup(row_width=2)
        markup.add(
            InlineKeyboardButton(
                "yes", callback_data=encode_end_confirmation(session_id, True)
            )
        )
        markup.add(
            InlineKeyboardButton(
                "no", callback_data=encode_end_confirmation(session_id, False)
            )
        )
        bot.send_message(
            message.chat.id,
            f"Abandon your {active.session.game_type.label} game?",
            reply_markup=markup,
        )

    @bot.callback_query_handler(func=lambda call: call.data.startswith("quit:"))
    def handle_quit_confirmation(call):
        try:
            accepted, session_id = parse_end_confirmation(call.data)
        except ValueError:
            bot.answer_callback_query(call.id, "Invalid confirmation.")
            return

        player = current_player(call.message.chat.id, call.from_user)
        if player is None:
            return
        owned = get_session(session_id, repos.sessions)
        if not owned.success or owned.session.player_id != player.id:
            bot.answer_callback_query(call.id, "This is not your game.")
            return

        try:
            if not accepted:
                bot.send_message(call.message.chat.id, "Keep playing!")
                return
            result = abandon_session(
                session_id, player.id, repos.players, repos.sessions
            )
            if not result.success:
                bot.send_message(call.message.chat.id, error_reply(result))
            else:
                bot.send_message(call.message.chat.id, "Game abandoned.")
        finally:
            bot.delete_message(call.message.chat.id, call.message.id)

    @bot.message_handler(commands=["me"])
    def handle_me(message):
        player = current_player(message.chat.id, message.from_user)
        if player is not None:
            bot.send_message(message.chat.id, format_player(player))

    @bot.message_handler(commands=["history"])
    def handle_history(message):
        player = current_player(message.chat.id, message.from_user)
        if player is None:
            return
        result = get_player_sessions(
            player.id, repos.players, repos.sessions, limit=HISTORY_SIZE
        )
        if not result.success:
            bot.send_message(message.chat.id, error_reply(result))
            return
        bot.send_message(message.chat.id, format_history(result.sessions))

    @bot.message_handler(commands=["leaderboard"])
    def handle_leaderboard(message):
        result = get_leaderboard(repos.players)
        bot.send_message(message.chat.id, format_leaderboard(result.players))

    @bot.message_handler(commands=["deactivate", "reactivate"])
    def handle_activation(message):
        player = current_player(message.chat.id, message.from_user)
        if player is None:
            return

        if message.text.split()[0][1:].startswith("deactivate"):
            result = deactivate_player(player.id, repos.players)
            text = "Your account is paused. Use /reactivate to come back."
        else:
            result = reactivate_player(player.id, repos.players)
            text = "Welcome back!"

        if not result.success:
            bot.send_message(message.chat.id, error_reply(result))
            return
        bot.send_message(message.chat.id, text)

    return bot
