"""
Unit tests for the Telegram handlers.
"""
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from telegram.constants import ParseMode
from telegram.error import NetworkError

import bot.handlers as handlers
from agent.modules.route import format_content

NOTE = "# Hello\n\nThis is a short note."


def _replies(update) -> list[str]:
    return [c.args[0] for c in update.message.reply_text.await_args_list]


def _plain_replies(update) -> list[str]:
    return [
        c.args[0] for c in update.message.reply_text.await_args_list
        if "parse_mode" not in c.kwargs
    ]


def _enable_ai(store, http, context):
    store.set_ai_enabled(True)
    store.set_ai_api_key("sk-handler")
    store.set_ai_endpoint("https://llm.example.test/v1/chat/completions")
    context.bot_data["http"] = http


class TestAccess:

    @pytest.mark.asyncio
    async def test_unauthorized_message_denied(self, update, context, monkeypatch):
        fake = MagicMock()
        fake.is_authorized.return_value = False
        monkeypatch.setattr(handlers, "auth", fake)
        update.message.text = NOTE

        await handlers.handle_plain_message(update, context)

        assert "draft" not in context.user_data
        assert "don't have access" in _replies(update)[0]

    @pytest.mark.asyncio
    async def test_settings_need_admin(self, update, context, allow_all, store):
        allow_all.is_admin.return_value = False
        context.args = ["ai", "on"]

        await handlers.cmd_set(update, context)

        assert store.settings.ai_enabled is False
        assert "Only admins" in _replies(update)[0]


class TestDraftAndPreview:

    @pytest.mark.asyncio
    async def test_text_becomes_draft_with_preview(self, update, context, allow_all):
        update.message.text = NOTE

        await handlers.handle_plain_message(update, context)

        assert context.user_data["draft"] == NOTE
        preview = context.user_data["preview"]
        assert preview == {
            "platform": "xiaohongshu",
            "text": format_content(NOTE, "xiaohongshu"),
            "source": "rules",
        }
        call = update.message.reply_text.await_args
        assert call.kwargs["parse_mode"] == ParseMode.MARKDOWN_V2

    @pytest.mark.asyncio
    async def test_draft_kept_as_sent(self, update, context, allow_all, store):
        store.set_platform_enabled("wechat", True)
        store.set_default_platform("wechat")
        update.message.text = "  # T"

        await handlers.handle_plain_message(update, context)

        assert context.user_data["draft"] == "  # T"
        assert context.user_data["preview"]["text"].startswith("# Obsidian内容分发助手插件介绍\n\n  # T")

    @pytest.mark.asyncio
    async def test_whitespace_only_message(self, update, context, allow_all):
        update.message.text = "  \n "

        await handlers.handle_plain_message(update, context)

        assert "draft" not in context.user_data
        assert _replies(update) == [handlers._EMPTY_DRAFT_MSG]

    @pytest.mark.asyncio
    async def test_auto_format_off_only_saves(self, update, context, allow_all, store):
        store.set_auto_format(False)
        update.message.text = NOTE

        await handlers.handle_plain_message(update, context)

        assert context.user_data["draft"] == NOTE
        assert "preview" not in context.user_data
        assert "Draft saved" in _replies(update)[0]

    @pytest.mark.asyncio
    async def test_preview_without_draft(self, update, context, allow_all):
        await handlers.cmd_preview(update, context)

        assert _replies(update) == [handlers._EMPTY_DRAFT_MSG]

    @pytest.mark.asyncio
    async def test_document_becomes_draft(self, update, context, allow_all):
        tg_file = MagicMock()
        tg_file.download_as_bytearray = AsyncMock(return_value=bytearray(NOTE.encode("utf-8")))
        update.message.document.file_name = "note.md"
        update.message.document.file_size = 100
        update.message.document.get_file = AsyncMock(return_value=tg_file)

        await handlers.handle_document(update, context)

        assert context.user_data["draft"] == NOTE

    @pytest.mark.asyncio
    async def test_unsupported_document(self, update, context, allow_all):
        update.message.document.file_name = "slides.pdf"
        update.message.document.file_size = 100
        tg_file = MagicMock()
        tg_file.download_as_bytearray = AsyncMock(return_value=bytearray(b"%PDF"))
        update.message.document.get_file = AsyncMock(return_value=tg_file)

        await handlers.handle_document(update, context)

        assert "draft" not in context.user_data
        assert "Unsupported file format" in _replies(update)[0]


class TestPlatformSelection:

    @pytest.mark.asyncio
    async def test_select_enabled_platform(self, update, context, allow_all):
        context.user_data["draft"] = NOTE
        context.args = ["X"]

        await handlers.cmd_platform(update, context)

        assert context.user_data["platform"] == "x"
        assert context.user_data["preview"]["text"] == format_content(NOTE, "x")

    @pytest.mark.asyncio
    async def test_disabled_platform_rejected(self, update, context, allow_all):
        context.args = ["wechat"]

        await handlers.cmd_platform(update, context)

        assert "platform" not in context.user_data
        assert "unknown or disabled" in _replies(update)[0]

    @pytest.mark.asyncio
    async def test_falls_back_when_selection_disabled(self, update, context, allow_all, store):
        context.user_data["platform"] = "jike"
        store.set_platform_enabled("jike", False)

        assert handlers._current_platform(context) == "xiaohongshu"

    @pytest.mark.asyncio
    async def test_first_enabled_when_default_disabled(self, context, allow_all, store):
        store.set_platform_enabled("xiaohongshu", False)

        assert handlers._current_platform(context) == "jike"


class TestAI:

    @pytest.mark.asyncio
    async def test_ai_disabled_shows_rule_based(self, update, context, allow_all):
        context.user_data["draft"] = NOTE

        await handlers.cmd_ai(update, context)

        preview = context.user_data["preview"]
        assert preview["source"] == "rules"
        assert preview["text"] == format_content(NOTE, "xiaohongshu")
        assert any("AI is not configured" in r for r in _replies(update))

    @pytest.mark.asyncio
    async def test_ai_success_replaces_preview(
        self, update, context, allow_all, store, mock_transport, completion_body,
    ):
        context.user_data["draft"] = NOTE
        http = mock_transport(lambda r: httpx.Response(200, json=completion_body(" AI post ")))
        _enable_ai(store, http, context)

        await handlers.cmd_ai(update, context)

        assert context.user_data["preview"] == {
            "platform": "xiaohongshu", "text": "AI post", "source": "ai",
        }
        assert http.seen[0].headers["Authorization"] == "Bearer sk-handler"

    @pytest.mark.asyncio
    async def test_ai_failure_notice(self, update, context, allow_all, store, mock_transport):
        context.user_data["draft"] = NOTE
        _enable_ai(store, mock_transport(lambda r: httpx.Response(500)), context)

        await handlers.cmd_ai(update, context)

        assert context.user_data["preview"]["source"] == "rules"
        assert any("AI generation failed" in r for r in _replies(update))

    @pytest.mark.asyncio
    async def test_status_message_delete_failure(self, update, context, allow_all):
        context.user_data["draft"] = NOTE
        status_msg = MagicMock()
        status_msg.delete = AsyncMock(side_effect=NetworkError("gone"))
        update.message.reply_text = AsyncMock(return_value=status_msg)

        await handlers.cmd_ai(update, context)

        assert context.user_data["preview"]["text"] == format_content(NOTE, "xiaohongshu")
        assert any("AI is not configured" in r for r in _replies(update))

    @pytest.mark.asyncio
    async def test_ai_rate_limited(self, update, context, allow_all, store, mock_transport, monkeypatch):
        context.user_data["draft"] = NOTE
        http = mock_transport(lambda r: httpx.Response(500))
        _enable_ai(store, http, context)
        monkeypatch.setattr(handlers, "_RATE_LIMIT_AI_PER_WINDOW", 1)

        await handlers.cmd_ai(update, context)
        await handlers.cmd_ai(update, context)

        assert len(http.seen) == 1
        assert "Too many AI requests" in _replies(update)[-1]


class TestCopyAndDistribute:

    @pytest.mark.asyncio
    async def test_copy_sends_current_preview(self, update, context, allow_all):
        context.user_data["draft"] = NOTE
        context.user_data["preview"] = {"platform": "xiaohongshu", "text": "AI text", "source": "ai"}

        await handlers.cmd_copy(update, context)

        assert _plain_replies(update)[0] == "AI text"

    @pytest.mark.asyncio
    async def test_copy_ignores_preview_for_other_platform(self, update, context, allow_all):
        context.user_data["draft"] = NOTE
        context.user_data["preview"] = {"platform": "jike", "text": "stale", "source": "ai"}

        await handlers.cmd_copy(update, context)

        assert _plain_replies(update)[0] == format_content(NOTE, "xiaohongshu")

    @pytest.mark.asyncio
    async def test_distribute_rule_based(self, update, context, allow_all):
        context.user_data["draft"] = NOTE
        context.user_data["platform"] = "jike"

        await handlers.cmd_distribute(update, context)

        replies = _plain_replies(update)
        assert replies[0] == format_content(NOTE, "jike")
        assert "即刻" in replies[1]

    @pytest.mark.asyncio
    async def test_distribute_with_ai(
        self, update, context, allow_all, store, mock_transport, completion_body,
    ):
        context.user_data["draft"] = NOTE
        _enable_ai(store, mock_transport(lambda r: httpx.Response(200, json=completion_body("AI!"))), context)

        await handlers.cmd_distribute(update, context)

        assert _plain_replies(update)[0] == "AI!"

    @pytest.mark.asyncio
    async def test_delivery_failure_notice(self, update, context, allow_all):
        context.user_data["draft"] = NOTE
        update.message.reply_text = AsyncMock(side_effect=[NetworkError("down"), None])

        await handlers.cmd_distribute(update, context)

        assert _replies(update)[-1] == handlers._DELIVERY_FAILED_MSG

    @pytest.mark.asyncio
    async def test_x_overflow_warning(self, update, context, allow_all):
        context.user_data["draft"] = "y" * 240
        context.user_data["platform"] = "x"

        await handlers.cmd_distribute(update, context)

        assert "280-character limit" in _replies(update)[-1]

    @pytest.mark.asyncio
    async def test_distribute_without_draft(self, update, context, allow_all):
        await handlers.cmd_distribute(update, context)

        assert _replies(update) == [handlers._EMPTY_DRAFT_MSG]


class TestSettingsCommands:

    @pytest.mark.asyncio
    async def test_set_ai_on(self, update, context, allow_all, store):
        context.args = ["ai", "on"]

        await handlers.cmd_set(update, context)

        assert store.settings.ai_enabled is True
        assert store.load().ai_enabled is True

    @pytest.mark.asyncio
    async def test_set_key_masked_and_message_deleted(self, update, context, allow_all, store):
        context.args = ["key", "sk-abcdefghijklmnop"]

        await handlers.cmd_set(update, context)

        assert store.settings.ai_api_key == "sk-abcdefghijklmnop"
        assert "sk-abcdefghijklmnop" not in _replies(update)[0]
        update.message.delete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_set_bad_bool(self, update, context, allow_all, store):
        context.args = ["autoformat", "maybe"]

        await handlers.cmd_set(update, context)

        assert store.settings.auto_format is True
        assert _replies(update)[0].startswith("❌")

    @pytest.mark.asyncio
    async def test_set_unknown_default(self, update, context, allow_all, store):
        context.args = ["default", "weibo"]

        await handlers.cmd_set(update, context)

        assert store.settings.default_platform == "xiaohongshu"
        assert "Unknown platform" in _replies(update)[0]

    @pytest.mark.asyncio
    async def test_set_usage(self, update, context, allow_all):
        context.args = ["ai"]

        await handlers.cmd_set(update, context)

        assert _replies(update)[0].startswith("Usage: /set")

    @pytest.mark.asyncio
    async def test_toggle(self, update, context, allow_all, store):
        context.args = ["wechat"]

        await handlers.cmd_toggle(update, context)

        assert store.settings.get_platform("wechat").enabled is True
        assert store.load().get_platform("wechat").enabled is True

    @pytest.mark.asyncio
    async def test_settings_view_masks_key(self, update, context, allow_all, store):
        store.set_ai_api_key("sk-secret-value-123")

        await handlers.cmd_settings(update, context)

        assert "sk-secret-value-123" not in _replies(update)[0]
