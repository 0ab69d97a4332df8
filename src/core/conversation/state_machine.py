"""
Conversation state machine.

Consumes one coalesced turn, drives the lead through the order-collection
stages, and otherwise answers as a sales chat backed by retrieval. Exactly
one response is produced per turn. Turns of the same user are processed one
at a time; different users run in parallel.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Callable

from src.config import settings
from src.core.events.turns import Turn, has_image
from src.core.orders import (
    AddressValidator,
    EmailValidator,
    ItemValidator,
    Lead,
    NameValidator,
    OrderLine,
    PendingOrder,
    PhoneValidator,
    ShownProduct,
    Stage,
    parse_contact_triple,
)
from src.core.orders.intent import (
    is_affirmative,
    is_edit,
    is_email_skip,
    is_greeting,
    is_likely_confirmation,
    is_negative,
    is_product_query,
)
from src.core.orders.messages import (
    confirm_order_prompt,
    format_order_summary,
    get_prompts,
    order_confirmed_prompt,
    reprompt,
)
from src.core.orders.service import OrderService
from src.core.rag.display import select_display_products
from src.core.rag.generator import ResponseGenerator
from src.core.rag.models import RetrievedProduct
from src.core.rag.prompts import IMAGE_ONLY, IMAGE_WITH_QUESTION
from src.core.rag.ranking import extract_categories
from src.core.safety import KeyedLock
from src.core.text import Language, detect_language, mask_phone
from src.db.base import BaseStore

logger = logging.getLogger(__name__)

IMAGE_PLACEHOLDER = "[image]"


@dataclass
class ConversationResponse:
    """Outbound result: reply text plus products to render."""

    text: str
    products: list[RetrievedProduct] = field(default_factory=list)


class ConversationStateMachine:
    """Central coordinator for one user turn."""

    def __init__(
        self,
        store: BaseStore,
        generator: ResponseGenerator,
        retriever,
        order_service: OrderService | None = None,
        locks: KeyedLock | None = None,
        rng: Callable[[], float] = random.random,
    ):
        self.store = store
        self.generator = generator
        self.retriever = retriever
        self.order_service = order_service or OrderService(store)
        self.locks = locks or KeyedLock()
        self._rng = rng
        self._background: set[asyncio.Task] = set()

    async def handle(self, turn: Turn) -> ConversationResponse:
        async with self.locks.hold(turn.user_key):
            return await self._handle(turn)

    async def _handle(self, turn: Turn) -> ConversationResponse:
        user_key = turn.user_key
        msg = turn.text.strip()
        language = detect_language(msg)

        try:
            lead = await self.store.get_or_create_lead(user_key)
        except Exception as e:
            logger.error(f"Could not load lead {user_key}: {e!r}")
            return ConversationResponse(get_prompts(language)["temporary_error"])

        await self._save(user_key, "user", msg or IMAGE_PLACEHOLDER, turn.message_id)

        stage_handlers = {
            Stage.ASK_NAME: self._on_ask_name,
            Stage.ASK_PHONE: self._on_ask_phone,
            Stage.ASK_EMAIL: self._on_ask_email,
            Stage.ASK_ADDRESS: self._on_ask_address,
            Stage.SHOW_ORDER_SUMMARY: self._on_show_summary,
            Stage.CONFIRM_ORDER: self._on_confirm_order,
        }
        stage_handler = stage_handlers.get(lead.stage)
        if stage_handler is not None:
            try:
                text = await stage_handler(lead, msg, language)
            except Exception as e:
                # The stage only moves after a successful write, so it stays put
                logger.error(f"Stage {lead.stage.value} failed for {user_key}: {e!r}", exc_info=True)
                text = get_prompts(language)["temporary_error"]
            await self._save(user_key, "assistant", text)
            return ConversationResponse(text)

        if lead.stage == Stage.ASK_ITEM:
            if is_greeting(msg) and not has_image(turn):
                text = get_prompts(language)["ask_item"]
                await self._save(user_key, "assistant", text)
                return ConversationResponse(text)
            if msg and not is_likely_confirmation(msg):
                ok, item, _ = ItemValidator.validate(msg)
                if ok:
                    # Remember the interest but keep browsing
                    lead = await self._update_quietly(lead, item=item)

        return await self._general_chat(turn, lead, msg, language)

    # ------------------------------------------------------------------
    # Collection stages
    # ------------------------------------------------------------------

    async def _on_ask_name(self, lead: Lead, msg: str, language: Language) -> str:
        prompts = get_prompts(language)

        triple = parse_contact_triple(msg)
        if triple is not None:
            name, phone, address = triple
            if lead.pending_order is not None:
                lead = await self.store.update_lead(
                    lead.user_key, name=name, phone=phone, address=address,
                    stage=Stage.SHOW_ORDER_SUMMARY,
                )
                logger.info(f"Lead {lead.user_key} sent all details at once, showing summary")
                return format_order_summary(lead.pending_order, lead, language)

            await self.store.update_lead(
                lead.user_key, name=name, phone=phone, address=address, stage=Stage.COMPLETED,
            )
            return prompts["done"]

        ok, name, error = NameValidator.validate(msg)
        if not ok:
            return reprompt(error, "ask_name", language)

        await self.store.update_lead(lead.user_key, name=name, stage=Stage.ASK_PHONE)
        return prompts["ask_phone"]

    async def _on_ask_phone(self, lead: Lead, msg: str, language: Language) -> str:
        prompts = get_prompts(language)
        ok, phone, error = PhoneValidator.validate(msg)
        if not ok:
            return reprompt(error, "ask_phone", language)

        await self.store.update_lead(lead.user_key, phone=phone, stage=Stage.ASK_EMAIL)
        logger.info(f"Lead {lead.user_key} phone saved ({mask_phone(phone)})")
        return prompts["ask_email"]

    async def _on_ask_email(self, lead: Lead, msg: str, language: Language) -> str:
        prompts = get_prompts(language)
        if is_email_skip(msg):
            email = None
        else:
            ok, email, error = EmailValidator.validate(msg)
            if not ok:
                return reprompt(error, "ask_email", language)

        await self.store.update_lead(lead.user_key, email=email, stage=Stage.ASK_ADDRESS)
        return prompts["ask_address"]

    async def _on_ask_address(self, lead: Lead, msg: str, language: Language) -> str:
        prompts = get_prompts(language)
        ok, address, error = AddressValidator.validate(msg)
        if not ok:
            return reprompt(error, "ask_address", language)

        if lead.pending_order is not None:
            lead = await self.store.update_lead(
                lead.user_key, address=address, stage=Stage.SHOW_ORDER_SUMMARY,
            )
            return format_order_summary(lead.pending_order, lead, language)

        await self.store.update_lead(lead.user_key, address=address, stage=Stage.COMPLETED)
        return prompts["done"]

    async def _on_show_summary(self, lead: Lead, msg: str, language: Language) -> str:
        prompts = get_prompts(language)

        if lead.pending_order is None:
            await self.store.update_lead(lead.user_key, stage=Stage.COMPLETED)
            return prompts["order_failed"]

        if is_affirmative(msg):
            await self.store.update_lead(lead.user_key, stage=Stage.CONFIRM_ORDER)
            return confirm_order_prompt(lead.pending_order, language)

        if is_edit(msg):
            await self.store.update_lead(lead.user_key, stage=Stage.ASK_NAME)
            return prompts["ask_name"]

        return prompts["summary_retry"]

    async def _on_confirm_order(self, lead: Lead, msg: str, language: Language) -> str:
        prompts = get_prompts(language)

        if is_negative(msg):
            await self.store.update_lead(
                lead.user_key, stage=Stage.COMPLETED, pending_order=None, last_shown_products=[],
            )
            logger.info(f"Lead {lead.user_key} cancelled the pending order")
            return prompts["order_cancelled"]

        if not is_affirmative(msg):
            return prompts["confirm_retry"]

        return await self._commit(lead, language)

    async def _commit(self, lead: Lead, language: Language) -> str:
        """
        Place the pending order.

        The lead leaves confirm_order before the order is written, so a
        repeated YES can never place the same order twice.
        """
        prompts = get_prompts(language)
        pending = lead.pending_order

        try:
            await self.store.update_lead(
                lead.user_key, stage=Stage.COMPLETED, pending_order=None, last_shown_products=[],
            )
        except Exception as e:
            logger.error(f"Could not close lead {lead.user_key} before commit: {e!r}")
            return prompts["order_failed"]

        try:
            order = await self.order_service.commit(lead)
        except Exception as e:
            logger.error(
                f"Order creation failed for {lead.user_key} "
                f"(phone {mask_phone(lead.phone)}, has_items={bool(pending and pending.items)}): {e}"
            )
            return prompts["order_failed"]

        await self._update_quietly(lead, last_order_id=order.id)
        return order_confirmed_prompt(order.id, order.total, language)

    # ------------------------------------------------------------------
    # General chat
    # ------------------------------------------------------------------

    async def _general_chat(
        self, turn: Turn, lead: Lead, msg: str, language: Language
    ) -> ConversationResponse:
        user_key = turn.user_key
        image = has_image(turn)
        confirming = bool(msg) and is_likely_confirmation(msg)

        if confirming and lead.last_shown_products:
            try:
                text = await self._start_order(lead, lead.last_shown_products[0], language)
            except Exception as e:
                logger.error(f"Could not start order for {user_key}: {e!r}")
                text = get_prompts(language)["temporary_error"]
            await self._save(user_key, "assistant", text)
            return ConversationResponse(text)

        products: list[RetrievedProduct] = []
        wants_retrieval = not confirming and (
            image
            or is_product_query(msg)
            or bool(extract_categories(msg))
            or lead.stage == Stage.ASK_ITEM
        )
        if wants_retrieval:
            products = await self._retrieve(turn, msg)

        if products:
            shown = [ShownProduct.from_product(p) for p in products[: settings.last_shown_limit]]
            lead = await self._update_quietly(lead, last_shown_products=shown)

        if image:
            context_msg = IMAGE_WITH_QUESTION.format(question=msg) if msg else IMAGE_ONLY
        else:
            context_msg = msg

        reply = await self.generator.reply(
            user_key, context_msg, lead=lead, pre_retrieved=products, language=language,
        )

        display = select_display_products(reply.text, products, msg, from_image=image)

        await self._save(user_key, "assistant", reply.text)
        self._maybe_refresh_summary(user_key)

        return ConversationResponse(reply.text, display)

    async def _retrieve(self, turn: Turn, msg: str) -> list[RetrievedProduct]:
        if turn.image_ref and msg:
            match_count = settings.rag_options_match_count
        elif turn.image_ref:
            match_count = settings.rag_match_count
        else:
            match_count = None

        try:
            return await self.retriever.retrieve(msg, image_ref=turn.image_ref, match_count=match_count)
        except Exception as e:
            logger.error(f"Product search failed for {turn.user_key}: {e!r}")
            return []

    async def _start_order(self, lead: Lead, product: ShownProduct, language: Language) -> str:
        """Build a one-item pending order from the top product the user last saw."""
        order = PendingOrder(
            items=[
                OrderLine(
                    product_id=product.product_id,
                    product_name=product.name,
                    quantity=1,
                    unit_price=product.price,
                )
            ]
        )

        if lead.has_contact_info:
            lead = await self.store.update_lead(
                lead.user_key, pending_order=order, stage=Stage.SHOW_ORDER_SUMMARY,
            )
            logger.info(f"Pending order for {lead.user_key}: {product.name}, details on file")
            return format_order_summary(order, lead, language)

        await self.store.update_lead(lead.user_key, pending_order=order, stage=Stage.ASK_NAME)
        logger.info(f"Pending order for {lead.user_key}: {product.name}, collecting details")
        return get_prompts(language)["ask_name"]

    # ------------------------------------------------------------------
    # Non-fatal persistence
    # ------------------------------------------------------------------

    async def _save(self, user_key: str, role: str, content: str, message_id: str | None = None) -> None:
        try:
            await self.store.append_message(user_key, role, content, message_id=message_id)
        except Exception as e:
            logger.warning(f"Could not save {role} message for {user_key}: {e!r}")

    async def _update_quietly(self, lead: Lead, **fields) -> Lead:
        try:
            return await self.store.update_lead(lead.user_key, **fields)
        except Exception as e:
            logger.warning(f"Could not update lead {lead.user_key}: {e!r}")
            return lead

    def _maybe_refresh_summary(self, user_key: str) -> None:
        if self._rng() >= settings.summary_refresh_probability:
            return
        task = asyncio.create_task(self.generator.refresh_summary(user_key))
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Summary refresh failed: {task.exception()!r}")

    async def drain(self) -> None:
        """Wait for background summary refreshes."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
