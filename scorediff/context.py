"""AggregationContext: the explicit accumulation state of one session."""

from dataclasses import dataclass, field

from scorediff.models import CanonicalPosition, DocumentLoadFailure, Endpoint, ParsedDocument


@dataclass
class AggregationContext:
    """
    Endpoints, observed positions and parsed documents collected so far.

    Each worker parses into its own context; contexts are combined with
    :meth:`merge` once every document has been parsed, so no state is shared
    while parsing runs.
    """

    endpoints: dict[str, Endpoint] = field(default_factory=dict)
    positions: set[CanonicalPosition] = field(default_factory=set)
    documents: list[ParsedDocument] = field(default_factory=list)
    failures: list[DocumentLoadFailure] = field(default_factory=list)

    def register_endpoint(self, identifier: str) -> Endpoint:
        """Return the endpoint for *identifier*, creating it on first sighting."""
        endpoint = self.endpoints.get(identifier)
        if endpoint is None:
            endpoint = Endpoint(id=identifier)
            self.endpoints[identifier] = endpoint
        return endpoint

    def register(self, document: ParsedDocument) -> None:
        self.register_endpoint(document.edge.source)
        self.register_endpoint(document.edge.target)
        self.positions.update(document.positions)
        self.documents.append(document)

    def add_failure(self, failure: DocumentLoadFailure) -> None:
        self.failures.append(failure)

    def merge(self, other: "AggregationContext") -> "AggregationContext":
        """Fold *other* into this context, keeping first-seen endpoint order."""
        for identifier in other.endpoints:
            self.register_endpoint(identifier)
        self.positions.update(other.positions)
        self.documents.extend(other.documents)
        self.failures.extend(other.failures)
        return self
