"""Structured problem document produced by the extractor."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ExtractedDocument(BaseModel):
    """One successfully extracted problem page.

    Every field except ``title`` holds an HTML fragment stored
    as-is.  Image references inside the fragments are already
    absolute.  Instances are immutable; the sample sequences are
    tuples so a cached value can never be mutated by a caller.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )

    title: str = Field(
        ...,
        description="Plain-text problem heading",
    )
    info: str | None = Field(
        default=None,
        description="Auxiliary metadata block (time / memory table)",
    )
    description: str = Field(
        ...,
        description="Main problem statement markup",
    )
    input: str | None = Field(
        default=None,
        description="Input section markup",
    )
    output: str | None = Field(
        default=None,
        description="Output section markup",
    )
    limit: str | None = Field(
        default=None,
        description="Constraints block markup",
    )
    sample_inputs: tuple[str, ...] = Field(
        default=(),
        alias="sampleInputs",
        description="Sample inputs, paired 1:1 with sample outputs",
    )
    sample_outputs: tuple[str, ...] = Field(
        default=(),
        alias="sampleOutputs",
        description="Sample outputs, same length as sample inputs",
    )
    sample_explains: tuple[str, ...] = Field(
        default=(),
        alias="sampleExplains",
        description=(
            "Sample explanations in page order.  Sparse: position "
            "does not imply pairing with a sample input."
        ),
    )
    hint: str | None = Field(
        default=None,
        description="Hint section markup",
    )
    source: str | None = Field(
        default=None,
        description="Problem source / attribution markup",
    )

    @model_validator(mode="after")
    def _check_sample_lengths(self) -> ExtractedDocument:
        """Samples come in input/output pairs; explains never outnumber them."""
        if len(self.sample_inputs) != len(self.sample_outputs):
            raise ValueError(
                f"sampleInputs ({len(self.sample_inputs)}) and "
                f"sampleOutputs ({len(self.sample_outputs)}) differ in length"
            )
        if len(self.sample_explains) > len(self.sample_inputs):
            raise ValueError(
                f"sampleExplains ({len(self.sample_explains)}) outnumber "
                f"sampleInputs ({len(self.sample_inputs)})"
            )
        return self
