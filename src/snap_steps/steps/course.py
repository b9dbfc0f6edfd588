"""
Course page steps: section navigation, access restrictions, availability
notices, the table of contents and fixtures with relative dates.

Several steps only expand into other step phrases and return ``Steps`` for the
registry to run.
"""

import html
import inspect
import re
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

import structlog

from ..browser.exceptions import ConfigurationError, NotFoundError
from ..browser.models import NO_FURTHER_STEPS, Locator, StepResult, Steps
from ..dates import format_date, replace_timestamp_phrases, resolve_date
from .base import BaseSteps
from .general import FormSteps, GeneralSteps

logger = structlog.get_logger(__name__)

DataGenerator = Callable[[str, list[list[str]]], Any]

_ORDINAL = re.compile(r"^(\d+)(?:st|nd|rd|th)?$")


def ordinal(value: str | int) -> int:
    """``"3rd"`` -> 3."""
    match = _ORDINAL.match(str(value).strip())
    if not match:
        raise ValueError(f"Not an ordinal: '{value}'")
    return int(match.group(1))


def asset_selector(section: int, nth_asset: str | int) -> str:
    return f"#section-{section} li.snap-asset:nth-of-type({ordinal(nth_asset)})"


def section_conditional_tag(section: int) -> str:
    return f"#section-{section} > div.content > .snap-conditional-tag"


def navigation_selector(direction: str, section: int) -> str:
    return f"#section-{section} nav.section_footer a.{direction}_section"


class SnapCourseSteps(BaseSteps):
    def __init__(
        self,
        session,
        settings=None,
        poller=None,
        resolver=None,
        general: GeneralSteps | None = None,
        forms: FormSteps | None = None,
        data_generator: DataGenerator | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        super().__init__(session, settings, poller, resolver)
        self.general = general or GeneralSteps(session, self.settings, self.poller, self.resolver)
        self.forms = forms or FormSteps(session, self.settings, self.poller, self.resolver)
        self.data_generator = data_generator
        self.clock = clock

    def _resolve(self, date: str) -> datetime:
        return resolve_date(date, self.clock())

    # --- Section navigation ---

    def _require_course_page(self) -> str:
        url = self.session.current_url()
        if "course/view.php" not in url.lower():
            raise self.expectation("Current page is not a course page!")
        return url

    async def i_go_to_single_course_section(self, section: int) -> StepResult:
        await self.general.wait_until_the_page_is_ready()
        url = self._require_course_page()
        glue = "&" if "?" in url else "?"
        await self.session.visit(f"{url}{glue}section={section}")
        return NO_FURTHER_STEPS

    async def i_go_to_course_section(self, section: int) -> StepResult:
        await self.general.wait_until_the_page_is_ready()
        self._require_course_page()
        await self.session.execute_script(f'location.hash = "section-{section}";')
        await self.ensure_element_is_visible(f"#section-{section}", "css_element")
        return NO_FURTHER_STEPS

    async def i_can_see_course_in_all_sections_mode(self, course: str) -> StepResult:
        # The single-section navigation must not be rendered.
        return Steps.of(
            "I open the personal menu",
            f'I follow "{course}"',
            "I go to single course section 1",
            '".section-navigation.navigationtitle" "css_element" should not exist',
        )

    async def i_create_a_new_section_in_course(self, course_name: str) -> StepResult:
        return Steps.of(
            "I open the personal menu",
            f'I follow "{course_name}"',
            'I follow "Create a new section"',
            'I set the field "Title" to "New section title"',
            'I click on "Create section" "button"',
        )

    # --- Restrictions ---

    def add_date_restriction(self, moment: datetime, save_label: str) -> Steps:
        return Steps.of(
            "I expand all fieldsets",
            'I click on "Add restriction..." "button"',
            '"Add restriction..." "dialogue" should be visible',
            'I click on "Date" "button" in the "Add restriction..." "dialogue"',
            f'I set the field "day" to "{moment.day}"',
            # Other selects on the form share the "month" label.
            f"I set the field with xpath \"//select[@name='x[month]']\" to \"{moment.month}\"",
            f'I set the field "year" to "{moment.year}"',
            f'I press "{save_label}"',
        )

    async def i_restrict_course_section_by_date(self, section: int, date: str) -> StepResult:
        moment = self._resolve(date)
        return Steps.of(
            f"I go to course section {section}",
            'I follow visible link "Edit section"',
            'I wait until ".snap-form-advanced" "css_element" is visible',
            f'I set the field "name" to "Topic {date} {section}"',
            self.add_date_restriction(moment, "Save changes"),
        )

    async def i_restrict_asset_by_date(self, asset_title: str, date: str) -> StepResult:
        moment = self._resolve(date)
        return Steps.of(
            f'I follow asset link "{asset_title}"',
            'I click on "#admin-menu-trigger" "css_element"',
            'I wait until ".block_settings.state-visible" "css_element" is visible',
            'I navigate to "Edit settings" node in "Assignment administration"',
            self.add_date_restriction(moment, "Save and return to course"),
        )

    async def apply_completion_restriction(self, asset_title: str, save_label: str) -> StepResult:
        """Adds an activity completion condition on the open edit form and saves it."""
        await self.forms.i_expand_all_fieldsets()
        await self.general.i_click_on("Add restriction...", "button")
        await self.general.should_be_visible("Add restriction...", "dialogue")
        await self.general.i_click_on_in_the(
            "Activity completion", "button", "Add restriction...", "dialogue"
        )
        await self.forms.i_set_the_field_with_xpath_to("//select[@name='cm']", asset_title)
        await self.forms.press_button(save_label)
        await self.general.wait_until_the_page_is_ready()
        return NO_FURTHER_STEPS

    async def apply_section_completion_restriction(self, asset_title: str) -> StepResult:
        return await self.apply_completion_restriction(asset_title, "Save changes")

    async def i_restrict_asset_by_completion(self, asset: str, required_asset: str) -> StepResult:
        await self.general.i_click_on(f"img[alt='Edit \"{asset}\"']", "css_element")
        return await self.apply_completion_restriction(required_asset, "Save and return to course")

    # --- Availability notices ---

    async def i_see_availabilityinfo(self, text: str) -> StepResult:
        for node in await self.find_all(Locator.css(".snap-conditional-tag")):
            if await node.get_text() == text:
                return NO_FURTHER_STEPS
        raise self.expectation(f'Failed to find availability notice of "{text}"')

    async def i_dont_see_availabilityinfo(self, text: str) -> StepResult:
        for node in await self.find_all(Locator.css(".snap-conditional-tag")):
            if await node.get_text() == text:
                raise self.expectation(
                    f'Availability notice found in element {node.xpath} of "{text}"'
                )
        return NO_FURTHER_STEPS

    def _display_date(self, date: str) -> str:
        return format_date(self._resolve(date), self.settings.date_format)

    async def i_should_see_available_from_in_element(
        self, date: str, element: str, selector_type: str
    ) -> StepResult:
        shown = self._display_date(date)
        await self.general.assert_element_contains_text(
            self.settings.string("available_from"), element, selector_type
        )
        return await self.general.assert_element_contains_text(shown, element, selector_type)

    async def i_should_not_see_available_from_in_element(
        self, date: str, element: str, selector_type: str
    ) -> StepResult:
        shown = self._display_date(date)
        try:
            await self.get_selected_node(selector_type, element)
        except NotFoundError:
            # No element, nothing shown in it.
            return NO_FURTHER_STEPS
        await self.general.assert_element_not_contains_text(
            self.settings.string("available_from"), element, selector_type
        )
        return await self.general.assert_element_not_contains_text(shown, element, selector_type)

    async def i_should_see_available_from_in_asset(
        self, date: str, nth_asset: str, section: int
    ) -> StepResult:
        return await self.i_should_see_available_from_in_element(
            date, asset_selector(section, nth_asset), "css_element"
        )

    async def i_should_not_see_available_from_in_asset(
        self, date: str, nth_asset: str, section: int
    ) -> StepResult:
        return await self.i_should_not_see_available_from_in_element(
            date, asset_selector(section, nth_asset), "css_element"
        )

    async def i_should_see_available_from_in_section(self, date: str, section: int) -> StepResult:
        return await self.i_should_see_available_from_in_element(
            date, section_conditional_tag(section), "css_element"
        )

    async def i_should_not_see_available_from_in_section(
        self, date: str, section: int
    ) -> StepResult:
        return await self.i_should_not_see_available_from_in_element(
            date, section_conditional_tag(section), "css_element"
        )

    # --- Table of contents ---

    async def i_should_see_in_toc_item(self, text: str, toc_item: int) -> StepResult:
        # The first item is the introduction.
        return Steps.of(
            f'I should see "{text}" in the "#chapters li:nth-of-type({int(toc_item) + 1})" "css_element"'
        )

    async def i_should_not_see_in_toc_item(self, text: str, toc_item: int) -> StepResult:
        return Steps.of(
            f'I should not see "{text}" in the "#chapters li:nth-of-type({int(toc_item) + 1})" "css_element"'
        )

    async def i_click_on_nth_item_in_toc(self, nth: str | int) -> StepResult:
        return await self.general.i_click_on(
            f"#chapters li:nth-of-type({ordinal(nth)})", "css_element"
        )

    # --- Previous/next section navigation ---

    async def check_navigation_for_section(
        self, direction: str, section: int, link_title: str, link_href: str
    ) -> StepResult:
        base = navigation_selector(direction, section)
        title_selector = f"{base} span"
        label = direction.capitalize()

        title = await (await self.find(Locator.css(title_selector))).get_html()
        escaped = html.escape(link_title, quote=False).replace('"', "&quot;")
        expected = f'<span class="nav_guide">{label} section</span><br>{escaped}'
        if title.lower() != expected.lower():
            raise self.expectation(
                f'{label} title does not match expected "{expected}" V "{title}"'
                f' - selector = "{title_selector}"'
            )

        href = await (await self.find(Locator.css(base))).get_attribute("href")
        if href != link_href:
            raise self.expectation(
                f'{label} navigation href does not match expected "{link_href}" V "{href}"'
                f' - selector = "{base}"'
            )
        return NO_FURTHER_STEPS

    async def _navigation_is_dimmed(self, direction: str, section: int) -> tuple[bool, str]:
        selector = navigation_selector(direction, section)
        node = await self.find(Locator.css(selector))
        classes = (await node.get_attribute("class") or "").split()
        return "dimmed_text" in classes, selector

    async def check_navigation_hidden_for_section(self, direction: str, section: int) -> StepResult:
        dimmed, selector = await self._navigation_is_dimmed(direction, section)
        if not dimmed:
            raise self.expectation(f'Section link should be hidden - selector "{selector}"')
        return NO_FURTHER_STEPS

    async def check_navigation_visible_for_section(self, direction: str, section: int) -> StepResult:
        dimmed, selector = await self._navigation_is_dimmed(direction, section)
        if dimmed:
            raise self.expectation(f'Section link should be visible - selector "{selector}"')
        return NO_FURTHER_STEPS

    async def the_previous_navigation_for_section_is(
        self, section: int, link_title: str, link_href: str
    ) -> StepResult:
        return await self.check_navigation_for_section("previous", section, link_title, link_href)

    async def the_next_navigation_for_section_is(
        self, section: int, link_title: str, link_href: str
    ) -> StepResult:
        return await self.check_navigation_for_section("next", section, link_title, link_href)

    async def the_previous_navigation_for_section_is_hidden(self, section: int) -> StepResult:
        return await self.check_navigation_hidden_for_section("previous", section)

    async def the_next_navigation_for_section_is_hidden(self, section: int) -> StepResult:
        return await self.check_navigation_hidden_for_section("next", section)

    async def the_previous_navigation_for_section_is_visible(self, section: int) -> StepResult:
        return await self.check_navigation_visible_for_section("previous", section)

    async def the_next_navigation_for_section_is_visible(self, section: int) -> StepResult:
        return await self.check_navigation_visible_for_section("next", section)

    # --- Fixtures ---

    async def the_following_exist(
        self, element_name: str, rows: Sequence[Sequence[str]]
    ) -> StepResult:
        """
        Creates ``element_name`` fixtures through the data generator after
        rewriting "the timestamp of <date>" cells to unix timestamps. The first
        column of every row is left untouched.
        """
        if self.data_generator is None:
            raise ConfigurationError("No data generator configured for fixture creation.")
        now = self.clock()
        table = [
            [cell if i == 0 else replace_timestamp_phrases(cell, now) for i, cell in enumerate(row)]
            for row in rows
        ]
        result = self.data_generator(element_name, table)
        if inspect.isawaitable(result):
            await result
        logger.info("Fixtures created.", element=element_name, rows=len(table))
        return NO_FURTHER_STEPS
