"""Turn query results into Mermaid markup with a chat-completion model.

Flow:
1. Serialize the data into a fixed prompt with few-shot Mermaid examples
2. Ask the model for a single completion
3. Keep only the first ```mermaid fenced block of the answer
"""
import json
import logging
import re
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAIError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"

MERMAID_BLOCK = re.compile(r"```mermaid\n([\s\S]*?)```", re.IGNORECASE)

PROMPT_TEMPLATE = """
#MISSION
Given the following JSON data, create a Mermaid diagram that best represents the relationships or flow depicted by the data. Use appropriate Mermaid syntax.

#EXAMPLES
##Example Gantt Diagram:
gantt
    title A Gantt Diagram
    dateFormat YYYY-MM-DD
    section Section
        A task          :a1, 2014-01-01, 30d
        Another task    :after a1, 20d
    section Another
        Task in Another :2014-01-12, 12d
        another task    :24d

##Example Pie Chart:
pie title Cost by Deputy
    "Deputy A" : 386
    "Deputy B" : 85
    "Deputy C" : 15

##Example Cost Journey:
journey
    title Cost Per Month
    section January
      Flights: 5: Me
      Office Supply: 3: Me
      Taxi: 1: Me, Joe
    section February
      Flights: 6: Me
      Office Supply: 5: Me

##Example Timeline
timeline
    title History of expenditure
    Jan/2021 : R$ 1000
    Fev/2021 : R$ 2000
    Mar/2021 : R$ 4500
    Abr/2021 : R$ 2000

##Example XY Chart
xychart-beta
    title "Cost vs Total Cost"
    x-axis [jan, feb, mar, apr, may, jun, jul, aug, sep, oct, nov, dec]
    y-axis "Revenue (in $)" 4000 --> 11000
    bar [5000, 6000, 7500, 8200, 9500, 10500, 11000, 10200, 9200, 8500, 7000, 6000]
    line [5000, 6000, 7500, 8200, 9500, 10500, 11000, 10200, 9200, 8500, 7000, 6000]

##IMPORTANT
**Important:** Provide only the Mermaid code enclosed within ```mermaid and ```. Do not include any explanations or additional text.

Data:
{data}

Mermaid diagram:
"""


class DiagramGenerationError(Exception):
    """No usable diagram could be produced. Callers decide whether that is fatal."""


def serialize_data(data: Any) -> str:
    if isinstance(data, str):
        return data
    # default=str covers dates and decimals coming straight from the database
    return json.dumps(data, indent=2, default=str)


def build_prompt(data: Any) -> str:
    return PROMPT_TEMPLATE.replace("{data}", serialize_data(data))


def extract_mermaid_code(text: Optional[str]) -> Optional[str]:
    """Return the body of the first ```mermaid block, or None if there is none."""
    if not text:
        return None
    match = MERMAID_BLOCK.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


class DiagramSynthesizer:
    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_MODEL):
        self.client = client
        self.model = model

    async def synthesize(self, data: Any) -> str:
        """
        Ask the model for a diagram describing `data`.

        Raises:
            DiagramGenerationError: if the API call fails or the answer has no
                mermaid block.
        """
        prompt = build_prompt(data)

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except OpenAIError as error:
            logger.error(f"Error calling the completion API: {error}")
            raise DiagramGenerationError("Completion request failed") from error

        content = response.choices[0].message.content if response.choices else None
        assistant_message = (content or "").strip()
        logger.info(f"Assistant response: {assistant_message}")

        mermaid_diagram = extract_mermaid_code(assistant_message)
        if mermaid_diagram is None:
            logger.warning("Failed to extract Mermaid diagram from the model response")
            raise DiagramGenerationError("No mermaid block in model response")

        logger.info(f"Extracted Mermaid diagram: {mermaid_diagram}")
        return mermaid_diagram

    async def aclose(self) -> None:
        await self.client.close()
