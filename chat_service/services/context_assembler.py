"""
Context Assembler

Turns recent chat history plus a new message into a model-ready prompt.
Each stored turn expands to a user turn followed by an assistant turn, in
the newest-first order in which history is fetched; the new message is
always the final turn.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from chat_service.config.constants import (
    INSTRUCTION_PREFIX,
    INSTRUCTION_SUFFIX,
    TURN_SEPARATOR,
    TurnRole,
)
from chat_service.models.chat_turn import ChatTurn


@dataclass(frozen=True)
class PromptTurn:
    """One logical turn of a prompt"""
    role: TurnRole
    content: str


@dataclass
class PromptSequence:
    """Ordered turns making up a prompt"""
    turns: List[PromptTurn] = field(default_factory=list)
    instruction_prefix: str = INSTRUCTION_PREFIX
    instruction_suffix: str = INSTRUCTION_SUFFIX
    separator: str = TURN_SEPARATOR

    def render(self) -> str:
        """
        Serialize the turns for an instruction-tuned model

        User turns are wrapped in the instruction delimiters; assistant turns
        are emitted as plain text.
        """
        lines = []
        for turn in self.turns:
            if turn.role == TurnRole.USER:
                lines.append(f"{self.instruction_prefix}{turn.content}{self.instruction_suffix}")
            else:
                lines.append(turn.content)
        return self.separator.join(lines)

    def __len__(self) -> int:
        return len(self.turns)


class ContextAssembler:
    """Builds prompts from a conversation window"""

    def __init__(
            self,
            instruction_prefix: str = INSTRUCTION_PREFIX,
            instruction_suffix: str = INSTRUCTION_SUFFIX,
            separator: str = TURN_SEPARATOR
    ):
        self.instruction_prefix = instruction_prefix
        self.instruction_suffix = instruction_suffix
        self.separator = separator

    def build_prompt(self, history: Sequence[ChatTurn], new_message: str) -> PromptSequence:
        """
        Build the prompt for a new message

        Args:
            history: Recent turns, newest first; may be empty
            new_message: Message being submitted

        Returns:
            PromptSequence ending with the new user turn
        """
        turns: List[PromptTurn] = []
        for chat in history:
            turns.append(PromptTurn(role=TurnRole.USER, content=chat.message))
            turns.append(PromptTurn(role=TurnRole.ASSISTANT, content=chat.response))
        turns.append(PromptTurn(role=TurnRole.USER, content=new_message))

        return PromptSequence(
            turns=turns,
            instruction_prefix=self.instruction_prefix,
            instruction_suffix=self.instruction_suffix,
            separator=self.separator
        )
