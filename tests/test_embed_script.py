"""
Static checks on the widget script served at /embed.js.
"""

import re

import pytest

from convobot.api.routers.public import EMBED_SCRIPT


@pytest.fixture(scope="module")
def script():
    return EMBED_SCRIPT.read_text(encoding="utf-8")


class TestEmbedScript:

    def test_reads_bot_id_from_script_tag(self, script):
        assert "getAttribute('data-bot-id')" in script

    def test_assigns_no_window_properties(self, script):
        assert re.findall(r"window\.[A-Za-z_$][\w$]*\s*=[^=]", script) == []

    def test_message_text_never_rendered_as_html(self, script):
        assert "bubble.textContent = text" in script
        # The launcher icon is the only markup injected
        assert script.count(".innerHTML") == 1

    def test_request_timeout(self, script):
        assert "AbortController" in script
        assert "REQUEST_TIMEOUT_MS = 20000" in script

    def test_calls_public_endpoints(self, script):
        assert "'/api/bot/' + encodeURIComponent(widget.botId) + '/config'" in script
        assert "'/api/bot/' + encodeURIComponent(widget.botId) + '/chat'" in script

    def test_styles_are_namespaced(self, script):
        assert "'conversion-bot-' +" in script

    def test_state_machine_states(self, script):
        for state in ("uninitialized", "config_loaded", "idle", "sending", "halted"):
            assert f"'{state}'" in script
