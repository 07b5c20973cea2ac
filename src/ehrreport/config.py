"""Configuration management for the EHR report pipeline."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Only the CLI reads these; pipeline functions take explicit arguments.
    """

    # Page geometry (A4 at 96 dpi minus print margins and page header)
    page_body_height: float = 812.0
    page_gap: float = 16.0

    # Text metrics measurer
    chars_per_line: int = 90
    line_height: float = 20.0
    block_padding: float = 48.0

    # Extraction
    two_digit_year_pivot: int = 50

    # Input. Legacy RTF is ASCII with \'XX escapes, so UTF-8 reads it as is;
    # undecodable files are retried with the fallback codepage.
    input_encoding: str = "utf-8"
    fallback_encoding: str = "cp1252"

    # Processing
    max_workers: int = 4

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "EHRREPORT_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
