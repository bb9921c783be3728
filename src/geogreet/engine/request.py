from dataclasses import dataclass

UNKNOWN_LOCATION = "Unknown Location"

PROMPT_TEMPLATE = (
    "You are a friendly local guide. The user is located in {location}. "
    "Greet them in a way that fits their location and suggest one activity "
    "they could do there today. Keep the whole answer under 50 words."
)


@dataclass(frozen=True)
class RequestContext:
    user_location: str
    region: str

    def prompt(self) -> str:
        return PROMPT_TEMPLATE.format(location=self.user_location)
