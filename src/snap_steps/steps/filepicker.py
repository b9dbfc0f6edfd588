"""
File manager and file picker steps.

Acting on a file or folder goes through its contextual menu:

    CLOSED --open()--> MENU_VISIBLE --perform()--> MENU_VISIBLE --confirm()--> ACTION_CONFIRMED

Calling the operations out of that order is a ``ContractViolation``.
"""

from enum import Enum

import structlog

from ..browser.exceptions import ContractViolation, ExpectationFailure, NotFoundError
from ..browser.models import NO_FURTHER_STEPS, Found, Locator, LookupResult, StepResult
from ..browser.selectors import class_contains, xpath_literal
from ..browser.session import NodeElement
from .base import BaseSteps

logger = structlog.get_logger(__name__)

FILEMANAGER_CONTENT = "//div[@class='fp-content']"
REPOSITORY_CONTENT = (
    f"//div[{class_contains('fp-repo-items')}]//descendant::div[@class='fp-content']"
)
FILE_ENTRY = f"//descendant::*[self::div | self::a][{class_contains('fp-file')}]"
CONFIRM_BUTTON = "div.fp-dlg button.fp-dlg-butconfirm"


class MenuState(str, Enum):
    CLOSED = "closed"
    MENU_VISIBLE = "menu_visible"
    ACTION_CONFIRMED = "action_confirmed"


def folder_trigger_xpath(prefix: str, name: str) -> str:
    """Contextual menu trigger of a folder entry; only rendered for folders."""
    return (
        prefix
        + FILE_ENTRY
        + f"[{class_contains('fp-folder')}]"
        + f"[normalize-space(.)={xpath_literal(name)}]"
        + f"//descendant::a[{class_contains('fp-contextmenu')}]"
    )


def filename_field_xpath(prefix: str, name: str) -> str:
    """Filename field of any file entry; clicking it opens the menu."""
    return (
        prefix
        + FILE_ENTRY
        + f"[normalize-space(.)={xpath_literal(name)}]"
        + f"//descendant::div[{class_contains('fp-filename-field')}]"
    )


def filepicker_container_xpath(label: str) -> str:
    """File manager (or file picker) block of the form field labelled ``label``."""
    literal = xpath_literal(label)
    field_input = f"//input[./@id = //label[normalize-space(.)={literal}]/@for]"
    return (
        field_input
        + f"//ancestor::div[{class_contains('ffilemanager')} or {class_contains('ffilepicker')}]"
        + " | "
        + field_input
        + f"//ancestor::div[{class_contains('form-item')}]"
        + "//div[contains(concat(' ', normalize-space(@class),' '), 'form-filemanager')]"
    )


class ContextualMenu:
    """One pass through a file entry's contextual menu."""

    def __init__(self, steps: "FilePickerSteps"):
        self.steps = steps
        self.state = MenuState.CLOSED

    def _require(self, expected: MenuState, operation: str) -> None:
        if self.state is not expected:
            raise ContractViolation(
                f"Cannot {operation} while the contextual menu is {self.state.value}"
            )

    async def open(self, name: str, filemanager: str | None = None) -> NodeElement:
        self._require(MenuState.CLOSED, "open the contextual menu")
        node = await self.steps.locate_file_entry(name, filemanager)
        await self.steps.ensure_node_is_visible(node)
        await node.click()
        self.state = MenuState.MENU_VISIBLE
        logger.debug("Contextual menu opened.", entry=name, filemanager=filemanager)
        return node

    async def perform(self, action: str, failure: ExpectationFailure) -> NodeElement:
        self._require(MenuState.MENU_VISIBLE, f"perform '{action}'")
        # The focused dialogue is modal, so the button is unique.
        button = await self.steps.find(
            Locator.css(f".moodle-dialogue-focused button.fp-file-{action}"), failure
        )
        await self.steps.ensure_node_is_visible(button)
        await button.click()
        return button

    async def confirm(self) -> NodeElement:
        self._require(MenuState.MENU_VISIBLE, "confirm")
        # "OK" is too common a label to press by name.
        button = await self.steps.find(Locator.css(CONFIRM_BUTTON))
        await button.click()
        self.state = MenuState.ACTION_CONFIRMED
        return button


class FilePickerSteps(BaseSteps):
    async def get_filepicker_node(self, filepicker: str | None) -> NodeElement:
        """
        Container node of a file manager form element, found through its label.

        The label points at a hidden input that named selectors ignore, so the
        container is reached by xpath. With no label the first file manager on
        the page is used.
        """
        failure = NotFoundError(f'"{filepicker}" filepicker can not be found', self.session)
        if not filepicker:
            return await self.find(Locator.xpath('//*[@class="form-filemanager"]'), failure)
        return await self.find(Locator.xpath(filepicker_container_xpath(filepicker)), failure)

    async def locate_file_entry(
        self, name: str, filemanager: str | None = None
    ) -> NodeElement:
        container: NodeElement | None = None
        message = f'"{name}" element can not be found'
        if filemanager:
            container = await self.get_filepicker_node(filemanager)
            message = f'The "{filemanager}" filemanager {message}'
            prefix = FILEMANAGER_CONTENT
        else:
            prefix = REPOSITORY_CONTENT

        async def folder_trigger() -> LookupResult:
            return await self.resolver.locate(
                Locator.xpath(folder_trigger_xpath(prefix, name)), container
            )

        async def filename_field() -> LookupResult:
            return await self.resolver.locate(
                Locator.xpath(filename_field_xpath(prefix, name)), container
            )

        result = await self.resolver.first_found([folder_trigger, filename_field])
        if not isinstance(result, Found):
            raise NotFoundError(message, self.session)
        return result.node

    async def open_element_contextual_menu(
        self, name: str, filemanager: str | None = None
    ) -> ContextualMenu:
        menu = ContextualMenu(self)
        await menu.open(name, filemanager)
        return menu

    async def perform_on_element(
        self, menu: ContextualMenu, action: str, failure: ExpectationFailure
    ) -> NodeElement:
        return await menu.perform(action, failure)

    async def i_delete_file_from_filemanager(self, name: str, filemanager: str) -> StepResult:
        menu = await self.open_element_contextual_menu(name, filemanager)
        await self.perform_on_element(
            menu, "delete", self.expectation(f"{name} element can not be deleted")
        )
        await menu.confirm()
        logger.info("File deleted from file manager.", entry=name, filemanager=filemanager)
        return NO_FURTHER_STEPS
