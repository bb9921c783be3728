from __future__ import annotations

import os
from typing import Literal, Mapping

from pydantic import BaseModel, ConfigDict, field_validator


class LocalModelConfig(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str = "distilgpt2"
    device: str = "cpu"   # change to "cuda" if you have it
    dtype: str = "float32"
    max_new_tokens: int = 64


class ServiceConfig(BaseModel):
    """Process-wide settings, read once at startup and never mutated."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    project_id: str = ""
    region: str = "unknown-region"
    port: int = 8080
    model_name: str = "gemini-2.0-flash-001"
    vertex_location: str = "us-central1"
    location_header: str = "X-Client-Geo-Location"
    backend: Literal["vertex", "local"] = "vertex"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    local_model: LocalModelConfig = LocalModelConfig()

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ServiceConfig":
        env = os.environ if environ is None else environ

        values: dict = {}
        project_id = env.get("GOOGLE_CLOUD_PROJECT") or env.get("PROJECT_ID")
        if project_id:
            values["project_id"] = project_id
        region = env.get("REGION")
        if region:
            values["region"] = region
        # Vertex is called in the same region the instance is deployed to
        # unless told otherwise.
        vertex_location = env.get("VERTEX_LOCATION") or region
        if vertex_location:
            values["vertex_location"] = vertex_location

        for key, field in (
            ("PORT", "port"),
            ("MODEL_NAME", "model_name"),
            ("LOCATION_HEADER", "location_header"),
            ("GENERATOR_BACKEND", "backend"),
            ("LOG_LEVEL", "log_level"),
        ):
            if env.get(key):
                values[field] = env[key]

        local: dict = {}
        for key, field in (
            ("LOCAL_MODEL_ID", "model_id"),
            ("LOCAL_DEVICE", "device"),
            ("LOCAL_DTYPE", "dtype"),
            ("LOCAL_MAX_NEW_TOKENS", "max_new_tokens"),
        ):
            if env.get(key):
                local[field] = env[key]
        if local:
            values["local_model"] = LocalModelConfig(**local)

        return cls(**values)
