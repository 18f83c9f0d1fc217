"""
Classifier and model whitelist.

Defines which classifiers the inference service exposes and which model
variants are valid for each. The registry is built once at startup and
shared read-only by every request handler.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from heart_gateway.config.logging_config import get_logger

logger = get_logger(__name__)


MODEL_TYPES: tuple[str, ...] = ("GradientBoosting", "LogisticRegression", "RandomForest")

CLASSIFIER_LABELS: dict[str, str] = {
    "BP_Class": "Blood Pressure",
    "Diabetes_Class": "Diabetes",
    "Dyslipidemia_Class": "Dyslipidemia (Cholesterol)",
}


@dataclass(frozen=True)
class ClassifierRegistry:
    """Immutable mapping of classifier id to its valid model ids."""

    models_by_classifier: Mapping[str, tuple[str, ...]]
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        frozen_models = {
            classifier: tuple(models)
            for classifier, models in self.models_by_classifier.items()
        }
        object.__setattr__(self, "models_by_classifier", MappingProxyType(frozen_models))
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    @property
    def classifier_ids(self) -> tuple[str, ...]:
        return tuple(self.models_by_classifier)

    @property
    def model_ids(self) -> tuple[str, ...]:
        """Every model id across all classifiers, in first-seen order."""
        seen: dict[str, None] = {}
        for models in self.models_by_classifier.values():
            for model in models:
                seen.setdefault(model, None)
        return tuple(seen)

    def has_classifier(self, classifier: str) -> bool:
        return classifier in self.models_by_classifier

    def models_for(self, classifier: str) -> tuple[str, ...]:
        """Valid models for a classifier; raises KeyError for unknown ids."""
        return self.models_by_classifier[classifier]

    def is_valid_model(self, classifier: str, model: str) -> bool:
        return model in self.models_by_classifier.get(classifier, ())

    def label_for(self, classifier: str) -> str:
        return self.labels.get(classifier, classifier)

    def to_dict(self) -> dict[str, list[str]]:
        """Convert to a JSON-friendly dictionary for the API."""
        return {classifier: list(models) for classifier, models in self.models_by_classifier.items()}


def build_registry(
    classifiers: Iterable[str] | None = None,
    models: Iterable[str] | None = None,
) -> ClassifierRegistry:
    """
    Build the classifier registry.

    Every model is valid for every classifier, matching how the inference
    service is trained.

    Args:
        classifiers: Classifier ids to expose. Defaults to the three
            health-risk classifiers.
        models: Model ids valid for each classifier. Defaults to MODEL_TYPES.

    Returns:
        A frozen ClassifierRegistry.
    """
    classifier_ids = list(classifiers) if classifiers is not None else list(CLASSIFIER_LABELS)
    model_ids = tuple(models) if models is not None else MODEL_TYPES

    registry = ClassifierRegistry(
        models_by_classifier={classifier: model_ids for classifier in classifier_ids},
        labels={c: CLASSIFIER_LABELS.get(c, c) for c in classifier_ids},
    )
    logger.debug(
        "Classifier registry built",
        classifiers=list(registry.classifier_ids),
        models=list(model_ids),
    )
    return registry
