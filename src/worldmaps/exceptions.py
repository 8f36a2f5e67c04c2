"""
Custom exceptions for the worldmaps package.

Every stage of the map pipeline raises a subclass of WorldMapsBaseError so
that callers can tell a bad input apart from a library fault.
"""


class WorldMapsBaseError(Exception):
    """
    Base exception for all worldmaps errors.

    All custom exceptions in the package inherit from this class.
    """

    pass


class ConfigurationError(WorldMapsBaseError):
    """
    Raised when there are configuration-related issues.

    This exception is used when:
    - A numeric setting cannot be parsed
    - A setting is outside its valid range
    - The output directory cannot be created
    """

    pass


class IngestError(WorldMapsBaseError):
    """
    Raised while loading indicator spreadsheets.

    Covers errors specific to indicator ingestion, including:
    - Missing or unreadable source files
    - Source layouts that do not match the World Bank export format
    """

    pass


class SourceFileError(IngestError):
    """
    Raised when a source file is missing, unreadable or of an unknown type.
    """

    pass


class SchemaMismatchError(IngestError):
    """
    Raised when a table does not have the columns a stage needs.

    Covers problems such as:
    - No column header matching a 4-digit year
    - Missing country name / code join keys
    """

    pass


class DuplicateKeyError(SchemaMismatchError):
    """
    Raised when a table repeats a key that must be unique.

    Indicator tables are keyed on (country_code, year).
    """

    pass


class GeometryLoadError(WorldMapsBaseError):
    """
    Raised for boundary archive problems.

    Covers issues with:
    - Missing or corrupt zip archives
    - Archives with no shapefile member
    - Shapefiles the geometry reader rejects
    """

    pass


class CompositionError(WorldMapsBaseError):
    """
    Raised when the joined country table breaks one of its guarantees.
    """

    pass


class ClassificationError(WorldMapsBaseError):
    """
    Raised for malformed break/label/palette configuration.

    A map must never be drawn with values placed in the wrong bucket, so
    this is always fatal.
    """

    pass


class PipelineRunError(WorldMapsBaseError):
    """
    Raised when a pipeline run fails for a reason outside the other errors.
    """

    pass
