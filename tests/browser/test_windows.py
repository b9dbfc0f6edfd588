import pytest

from snap_steps.browser.exceptions import NotFoundError, WindowNotFoundError
from snap_steps.browser.windows import borrowed_window


@pytest.mark.asyncio
async def test_borrowed_window_is_focused_then_closed(fake_session):
    async with borrowed_window(fake_session, "http://moodle.test", "Log out window") as session:
        assert session.window == "Log out window"
        assert session.current_url() == "http://moodle.test"

    assert fake_session.window == "main"
    assert "Log out window" not in fake_session.windows
    assert fake_session.scripts == [
        'window.open("http://moodle.test", "Log out window")',
        "window.close()",
    ]


@pytest.mark.asyncio
async def test_focus_is_restored_when_the_body_fails(fake_session):
    with pytest.raises(NotFoundError):
        async with borrowed_window(fake_session, "http://moodle.test", "other"):
            raise NotFoundError("#fixy-logout missing")

    assert fake_session.window == "main"
    assert fake_session.switches == ["other", "main"]


@pytest.mark.asyncio
async def test_main_window_is_not_closed_when_switch_fails(fake_session, mocker):
    mocker.patch.object(fake_session, "execute_script")

    with pytest.raises(WindowNotFoundError):
        async with borrowed_window(fake_session, "http://moodle.test", "never-opened"):
            pytest.fail("body must not run")

    fake_session.execute_script.assert_awaited_once()
    assert fake_session.window == "main"
    assert fake_session.switches == ["never-opened", "main"]
