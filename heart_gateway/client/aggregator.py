"""
Complete-analysis fan-out.

Runs one gateway prediction per (classifier, model) pair for a single
patient record and assembles the outcomes into one AggregateResult once
every pair has resolved. A failing pair is recorded as an error for that
pair only.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from heart_gateway.client.gateway_client import GatewayCallError, GatewayClient, PredictionResult
from heart_gateway.client.patient_record import PATIENT_FIELDS, PatientField, prepare_patient_record
from heart_gateway.config.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_CONCURRENCY = 3


@dataclass(frozen=True)
class PairError:
    """Why one classifier/model pair produced no prediction."""

    error: str
    status_code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error}


PairOutcome = PredictionResult | PairError


@dataclass
class AggregateResult:
    """
    Outcomes keyed by classifier, then model.

    Key order follows the order classifiers and models were requested in.
    """

    predictions: dict[str, dict[str, PairOutcome]] = field(default_factory=dict)
    input: dict[str, float] = field(default_factory=dict)

    def outcome(self, classifier: str, model: str) -> PairOutcome:
        return self.predictions[classifier][model]

    def pairs(self) -> list[tuple[str, str, PairOutcome]]:
        return [
            (classifier, model, outcome)
            for classifier, by_model in self.predictions.items()
            for model, outcome in by_model.items()
        ]

    @property
    def successes(self) -> list[tuple[str, str, PredictionResult]]:
        return [(c, m, o) for c, m, o in self.pairs() if isinstance(o, PredictionResult)]

    @property
    def errors(self) -> list[tuple[str, str, PairError]]:
        return [(c, m, o) for c, m, o in self.pairs() if isinstance(o, PairError)]

    def to_dict(self) -> dict[str, Any]:
        """Shape matching the gateway's batch envelope."""
        return {
            "success": True,
            "predictions": {
                classifier: {model: outcome.to_dict() for model, outcome in by_model.items()}
                for classifier, by_model in self.predictions.items()
            },
            "input": dict(self.input),
        }


async def run_single_prediction(
    client: GatewayClient,
    record: Mapping[str, Any],
    classifier: str,
    model: str | None = None,
    fields: tuple[PatientField, ...] = PATIENT_FIELDS,
) -> PredictionResult:
    """
    Single-prediction mode: validate the record, then make one call.

    Raises:
        PatientRecordError: The record is incomplete or not numeric; nothing is sent.
        GatewayCallError: The gateway call failed.
    """
    prepared = prepare_patient_record(record, fields)
    return await client.predict(classifier, prepared, model=model)


async def run_complete_analysis(
    client: GatewayClient,
    record: Mapping[str, Any],
    classifiers: Iterable[str],
    models: Iterable[str],
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    fields: tuple[PatientField, ...] = PATIENT_FIELDS,
) -> AggregateResult:
    """
    Predict every classifier with every model for one patient record.

    Args:
        client: Gateway client to issue the calls through.
        record: Patient form values; validated and converted before any call.
        classifiers: Classifier ids (outer iteration order).
        models: Model ids (inner iteration order).
        max_concurrency: Upper bound on in-flight gateway calls; 1 runs the
            pairs strictly one after another.
        fields: The patient fields the record must contain.

    Returns:
        An AggregateResult with one entry per pair.

    Raises:
        PatientRecordError: The record is incomplete or not numeric; no
            call is issued.
    """
    if max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")
    record = prepare_patient_record(record, fields)

    classifier_ids = list(classifiers)
    model_ids = list(models)
    pairs = [(classifier, model) for classifier in classifier_ids for model in model_ids]
    semaphore = asyncio.Semaphore(max_concurrency)

    async def run_pair(classifier: str, model: str) -> PairOutcome:
        async with semaphore:
            try:
                return await client.predict(classifier, record, model=model)
            except GatewayCallError as e:
                logger.warning("Pair prediction failed", classifier=classifier, model=model, error=e.message)
                return PairError(e.message, status_code=e.status_code)
            except Exception as e:
                logger.exception("Pair prediction raised", classifier=classifier, model=model)
                return PairError(str(e) or type(e).__name__)

    logger.info("Starting complete analysis", pair_count=len(pairs), max_concurrency=max_concurrency)
    outcomes = await asyncio.gather(*(run_pair(classifier, model) for classifier, model in pairs))

    result = AggregateResult(input=dict(record))
    for (classifier, model), outcome in zip(pairs, outcomes):
        result.predictions.setdefault(classifier, {})[model] = outcome

    logger.info(
        "Complete analysis finished",
        successes=len(result.successes),
        errors=len(result.errors),
    )
    return result
