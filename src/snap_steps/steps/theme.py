"""
Steps for the Snap theme's own interface: login and the personal menu,
visible-link following, uploads, the page header and course cards.
"""

from pathlib import Path

import structlog

from ..browser.exceptions import StepSkipped
from ..browser.models import NO_FURTHER_STEPS, Locator, SelectorType, StepResult
from ..browser.selectors import xpath_literal
from ..browser.session import NodeElement
from ..browser.windows import borrowed_window
from .base import BaseSteps
from .general import FormSteps, GeneralSteps

logger = structlog.get_logger(__name__)

LOGOUT_WINDOW = "Log out window"


def course_card(shortname: str) -> str:
    return f'.courseinfo[data-shortname="{shortname}"]'


class SnapThemeSteps(BaseSteps):
    def __init__(
        self,
        session,
        settings=None,
        poller=None,
        resolver=None,
        general: GeneralSteps | None = None,
        forms: FormSteps | None = None,
    ):
        super().__init__(session, settings, poller, resolver)
        self.general = general or GeneralSteps(session, self.settings, self.poller, self.resolver)
        self.forms = forms or FormSteps(session, self.settings, self.poller, self.resolver)

    async def i_am_using_joule(self) -> StepResult:
        dirroot = self.settings.dirroot
        if dirroot is None or not (Path(dirroot) / "local" / "mrooms").exists():
            raise StepSkipped("Skipping tests of Joule specific functionality")
        return NO_FURTHER_STEPS

    async def i_wait_until_is_visible(self, element: str, selector_type: str) -> StepResult:
        await self.ensure_element_is_visible(element, selector_type)
        return NO_FURTHER_STEPS

    # --- Login and the personal menu ---

    async def i_log_in_with_snap_as(
        self, username: str, keep_menu_open: bool = False
    ) -> StepResult:
        """Logs in from the front page; the user's password is their username."""
        await self.session.visit(self.settings.locate_path("/"))
        await self.general.wait_until_the_page_is_ready()

        await self.general.i_click_on(self.settings.string("login"), "link")
        await self.general.assert_page_not_contains_text(self.settings.string("logout"))

        await self.forms.i_set_the_field_to(self.settings.string("username"), username)
        await self.forms.i_set_the_field_to(self.settings.string("password"), username)
        await self.forms.press_button(self.settings.string("login"))

        if not keep_menu_open and self.settings.personal_menu_login_toggle:
            await self.general.i_click_on("#fixy-close", "css_element")
        logger.info("Logged in.", username=username, menu_open=keep_menu_open)
        return NO_FURTHER_STEPS

    async def i_log_in_and_keep_personal_menu_open(self, username: str) -> StepResult:
        return await self.i_log_in_with_snap_as(username, keep_menu_open=True)

    async def i_open_the_personal_menu(self) -> StepResult:
        node = await self.find(Locator.css("#primary-nav"))
        # Already open.
        if not await node.is_visible():
            await self.general.i_click_on(".snap-my-courses-menu", "css_element")
        return NO_FURTHER_STEPS

    async def i_log_out(self) -> StepResult:
        await self.i_open_the_personal_menu()
        await self.general.i_click_on("#fixy-logout", "css_element")
        return NO_FURTHER_STEPS

    async def i_log_out_via_a_separate_window(self) -> StepResult:
        """Logs out in another window so the current one keeps its logged-in page."""
        async with borrowed_window(self.session, self.settings.wwwroot, LOGOUT_WINDOW):
            await self.i_log_out()
        return NO_FURTHER_STEPS

    async def i_follow_in_the_mobile_menu(self, link: str) -> StepResult:
        node = await self.get_node_in_container("link", link, "css_element", "#fixy-mobile-menu")
        await self.ensure_node_is_visible(node)
        await node.click()
        return NO_FURTHER_STEPS

    # --- Links ---

    async def click_visible_link(self, link: str) -> StepResult:
        """Follows the copy of a link that is on screen when several are rendered."""
        await self.resolver.resolve_and_act(Locator.named(SelectorType.LINK, link))
        return NO_FURTHER_STEPS

    async def i_follow_asset_link(self, asset_title: str) -> StepResult:
        locator = Locator.xpath(f"//a/span[contains(., {xpath_literal(asset_title)})]")
        await self.resolver.scan_for_visible(locator)
        return NO_FURTHER_STEPS

    # --- Uploads ---

    async def upload_file(self, fixture_filename: str, selector: str) -> NodeElement:
        path = self.settings.fixture_path(fixture_filename)
        node = await self.find(Locator.css(selector))
        await node.attach_file(str(path))
        logger.debug("File attached.", selector=selector, path=str(path))
        return node

    async def i_upload_file(self, fixture_filename: str, section: int = 1) -> StepResult:
        await self.upload_file(fixture_filename, f"#snap-drop-file-{section}")
        return NO_FURTHER_STEPS

    async def i_upload_cover_image(self, fixture_filename: str) -> StepResult:
        await self.upload_file(fixture_filename, "#snap-coverfiles")
        await self.session.execute_script('jQuery( "#snap-coverfiles" ).trigger( "change" );')
        return NO_FURTHER_STEPS

    # --- Page header and editing ---

    async def pageheader_background_image(self) -> str | None:
        return await self.session.evaluate_script(
            "return jQuery('#page-header').css('background-image')"
        )

    async def pageheader_has_cover_image(self) -> StepResult:
        image = await self.pageheader_background_image()
        if not image or image == "none":
            raise self.expectation(f"#page-header does not have background image ({image})")
        return NO_FURTHER_STEPS

    async def pageheader_does_not_have_cover_image(self) -> StepResult:
        image = await self.pageheader_background_image()
        if image and image != "none":
            raise self.expectation(f"#page-header has a background image ({image})")
        return NO_FURTHER_STEPS

    async def i_can_see_input_with_value(self, value: str) -> StepResult:
        return await self.i_wait_until_is_visible(f'input[value="{value}"]', "css_element")

    async def course_page_should_be_in_edit_mode(self) -> StepResult:
        await self.general.assert_element_not_contains_text(
            "Test assignment1", "#section-1", "css_element"
        )
        await self.ensure_element_exists(".block_news_items a.toggle-display", "css_element")
        return await self.i_can_see_input_with_value("Turn editing off")

    async def i_follow_the_page_heading_course_link(self) -> StepResult:
        return await self.general.i_click_on("#page-mast a", "css_element")

    async def i_cannot_follow_the_page_heading(self) -> StepResult:
        await self.ensure_element_exists("#page-mast", "css_element")
        await self.ensure_element_does_not_exist("#page-mast a", "css_element")
        return NO_FURTHER_STEPS

    # --- Course cards ---

    async def favorite_toggle_exists_for_course(self, shortname: str) -> StepResult:
        return await self.general.should_exist(
            f'{course_card(shortname)} .favoritetoggle[aria-pressed="false"]', "css_element"
        )

    async def course_card_appears_before(self, shortname1: str, shortname2: str) -> StepResult:
        return await self.general.should_appear_before(
            course_card(shortname1), "css_element", course_card(shortname2), "css_element"
        )

    async def course_is_favorited(self, shortname: str) -> StepResult:
        return await self.general.should_exist(
            f'{course_card(shortname)} .favoritetoggle[aria-pressed="true"]', "css_element"
        )

    async def course_is_not_favorited(self, shortname: str) -> StepResult:
        return await self.general.should_not_exist(
            f'{course_card(shortname)} .favoritetoggle[aria-pressed="true"]', "css_element"
        )

    async def i_toggle_course_card_favorite(self, shortname: str) -> StepResult:
        return await self.general.i_click_on(
            f"{course_card(shortname)} button.favoritetoggle", "css_element"
        )
