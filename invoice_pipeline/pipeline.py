"""Pipeline orchestration: validate, render, upload, attach."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncContextManager, Callable, Dict, List, Mapping, Optional, Protocol, Tuple

from .config import PIPELINE_DELIVERED, Settings
from .errors import AttachError, InvoiceError
from .model import (
    BILLING_POLICY,
    PRESENTATION_POLICY,
    BuildPolicy,
    DeliveryResult,
    InvoiceRecord,
    RawFields,
    RemoteRecord,
    RenderedArtifact,
    build_record,
)
from .render_pool import RenderPool
from .rendering import Renderer, RendererKind, create_renderer

logger = logging.getLogger(__name__)


class Stage(str, enum.Enum):
    VALIDATING = "validating"
    RENDERING = "rendering"
    UPLOADING = "uploading"
    ATTACHING = "attaching"
    DONE = "done"
    FAILED = "failed"


class DeliveryClient(Protocol):
    async def get_record(self, record_id: str) -> RemoteRecord:
        ...

    async def upload(self, artifact: RenderedArtifact) -> str:
        ...

    async def attach(self, record_id: str, url: str, filename: str) -> None:
        ...


DeliveryFactory = Callable[[], AsyncContextManager[DeliveryClient]]


@dataclass
class PipelineResult:
    stage: Stage
    stages: List[Stage] = field(default_factory=list)
    record: Optional[InvoiceRecord] = None
    artifact: Optional[RenderedArtifact] = None
    delivery: Optional[DeliveryResult] = None
    error: Optional[InvoiceError] = None
    failed_stage: Optional[Stage] = None

    @property
    def succeeded(self) -> bool:
        return self.stage is Stage.DONE

    def to_response(self) -> Tuple[int, Dict[str, Any]]:
        if not self.succeeded:
            error = self.error or InvoiceError("Failed to generate invoice")
            return error.status, error.to_payload()

        assert self.record is not None
        body: Dict[str, Any] = {"success": True, "invoiceNumber": self.record.invoice_number}
        if self.delivery is None:
            assert self.artifact is not None
            body["message"] = "Invoice generated successfully"
            body["filename"] = self.artifact.filename
            body["pdfDataUrl"] = self.artifact.data_url()
            return 200, body

        body["url"] = self.delivery.artifact_url
        if self.delivery.attached_record_id is None:
            body["message"] = "PDF created"
            return 200, body

        body["recordId"] = self.delivery.attached_record_id
        body["attachmentSucceeded"] = self.delivery.attachment_succeeded
        if self.delivery.attachment_succeeded:
            body["message"] = "Invoice created & attached to record"
        else:
            body["message"] = "Invoice uploaded, but attaching it to the record failed"
        return 200, body


class _Run:
    """Mutable stage tracker for a single invocation."""

    def __init__(self) -> None:
        self.stage = Stage.VALIDATING
        self.stages: List[Stage] = [Stage.VALIDATING]

    def enter(self, stage: Stage) -> None:
        logger.debug("Pipeline stage %s -> %s", self.stage.value, stage.value)
        self.stage = stage
        self.stages.append(stage)

    def fail(self, error: InvoiceError, record: Optional[InvoiceRecord] = None) -> PipelineResult:
        failed_stage = self.stage
        self.enter(Stage.FAILED)
        return PipelineResult(
            stage=Stage.FAILED,
            stages=self.stages,
            record=record,
            error=error,
            failed_stage=failed_stage,
        )


class InvoicePipeline:
    """Builder -> renderer -> delivery, with one fixed rendering strategy.

    Without a delivery factory the rendered PDF is returned inline; with one
    it is uploaded and, when a target record is known, attached to it.
    """

    def __init__(
        self,
        renderer: Renderer,
        policy: BuildPolicy,
        settings: Settings,
        delivery_factory: Optional[DeliveryFactory] = None,
    ) -> None:
        self.renderer = renderer
        self.policy = policy
        self.settings = settings
        self.delivery_factory = delivery_factory

    @property
    def variant(self) -> str:
        return "delivered" if self.delivery_factory is not None else "inline"

    @classmethod
    def inline(
        cls,
        settings: Settings,
        renderer: Optional[Renderer] = None,
        pool: Optional[RenderPool] = None,
    ) -> "InvoicePipeline":
        if renderer is None:
            renderer = create_renderer(RendererKind.VECTOR, settings, pool=pool)
        return cls(renderer, PRESENTATION_POLICY, settings)

    @classmethod
    def delivered(
        cls,
        settings: Settings,
        renderer: Optional[Renderer] = None,
        delivery_factory: Optional[DeliveryFactory] = None,
    ) -> "InvoicePipeline":
        settings.require_delivery()
        if renderer is None:
            renderer = create_renderer(RendererKind.MARKUP, settings)
        if delivery_factory is None:
            from .delivery import AirtableClient

            def connect() -> AirtableClient:
                return AirtableClient(settings)

            delivery_factory = connect

        return cls(renderer, BILLING_POLICY, settings, delivery_factory=delivery_factory)

    @classmethod
    def from_settings(cls, settings: Settings, pool: Optional[RenderPool] = None) -> "InvoicePipeline":
        if settings.pipeline == PIPELINE_DELIVERED:
            return cls.delivered(settings)
        return cls.inline(settings, pool=pool)

    async def run(self, payload: Mapping[str, Any]) -> PipelineResult:
        run = _Run()
        fields = RawFields.from_payload(payload)
        if self.delivery_factory is None:
            result = await self._execute(run, fields, None)
        else:
            async with self.delivery_factory() as delivery:
                result = await self._execute(run, fields, delivery)

        if result.succeeded:
            assert result.record is not None
            logger.info(
                "Invoice %s completed (%s, %s renderer)",
                result.record.invoice_number,
                self.variant,
                self.renderer.kind.value,
            )
        else:
            assert result.error is not None
            logger.info(
                "Invoice pipeline failed at %s: %s",
                result.failed_stage.value if result.failed_stage else "unknown",
                result.error.message,
            )
        return result

    async def _execute(
        self,
        run: _Run,
        fields: RawFields,
        delivery: Optional[DeliveryClient],
    ) -> PipelineResult:
        record: Optional[InvoiceRecord] = None
        try:
            remote: Optional[RemoteRecord] = None
            if fields.record_id and delivery is not None:
                remote = await delivery.get_record(fields.record_id)
            record = build_record(fields, remote, policy=self.policy, settings=self.settings)

            run.enter(Stage.RENDERING)
            content = await self.renderer.render(record)
            artifact = RenderedArtifact.for_record(record, content)

            if delivery is None:
                run.enter(Stage.DONE)
                return PipelineResult(stage=Stage.DONE, stages=run.stages, record=record, artifact=artifact)

            run.enter(Stage.UPLOADING)
            url = await delivery.upload(artifact)

            result = DeliveryResult(artifact_url=url)
            if record.record_id:
                run.enter(Stage.ATTACHING)
                result = await self._attach(delivery, record, url)

            run.enter(Stage.DONE)
            return PipelineResult(stage=Stage.DONE, stages=run.stages, record=record, delivery=result)
        except InvoiceError as exc:
            return run.fail(exc, record)
        except Exception as exc:
            logger.exception("Unexpected failure while %s invoice", run.stage.value)
            error = InvoiceError("Failed to generate invoice", str(exc) or type(exc).__name__)
            return run.fail(error, record)

    async def _attach(self, delivery: DeliveryClient, record: InvoiceRecord, url: str) -> DeliveryResult:
        assert record.record_id is not None
        try:
            await delivery.attach(record.record_id, url, record.filename)
        except AttachError as exc:
            logger.warning(
                "Uploaded %s to %s but could not attach it to record %s: %s",
                record.filename,
                url,
                record.record_id,
                exc.details or exc.message,
            )
            return DeliveryResult(artifact_url=url, attached_record_id=record.record_id, attachment_succeeded=False)
        return DeliveryResult(artifact_url=url, attached_record_id=record.record_id, attachment_succeeded=True)
