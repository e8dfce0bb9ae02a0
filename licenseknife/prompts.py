"""
Диалог с оператором как последовательность шагов "вопрос -> разбор ответа".

Prompter отвечает только за ввод/вывод строки, разбор живёт в PromptStep.parse,
поэтому движок выбора можно гонять в тестах через ScriptedPrompter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, List, Optional, TypeVar

import typer
from rich.console import Console

from .config import MAX_PROMPT_ATTEMPTS
from .errors import SelectionError

T = TypeVar("T")


class Prompter(ABC):
    @abstractmethod
    def ask(self, text: str) -> str:
        ...

    @abstractmethod
    def confirm(self, text: str, default: bool = False) -> bool:
        ...


class ConsolePrompter(Prompter):
    def ask(self, text: str) -> str:
        return typer.prompt(text, default="", show_default=False)

    def confirm(self, text: str, default: bool = False) -> bool:
        return typer.confirm(text, default=default)


class ScriptedPrompter(Prompter):
    """
    Отдаёт заранее заданные ответы по порядку.
    confirm берёт ответы из того же списка ("y"/"n", пустая строка = default).
    """

    def __init__(self, answers: Iterable[str]) -> None:
        self.answers: List[str] = list(answers)
        self.asked: List[str] = []

    def _next(self, text: str) -> str:
        self.asked.append(text)
        if not self.answers:
            raise AssertionError(f"No scripted answer for prompt: {text}")
        return self.answers.pop(0)

    def ask(self, text: str) -> str:
        return self._next(text)

    def confirm(self, text: str, default: bool = False) -> bool:
        answer = self._next(text).strip().lower()
        if not answer:
            return default
        return answer in ("y", "yes", "д", "да")


@dataclass
class PromptStep(Generic[T]):
    prompt: str
    parse: Callable[[str], T]


def run_step(
    step: PromptStep[T],
    prompter: Prompter,
    console: Optional[Console] = None,
    attempts: int = MAX_PROMPT_ATTEMPTS,
) -> T:
    """
    Задать вопрос и разобрать ответ.
    При SelectionError переспрашиваем, после attempts неудач ошибка уходит наверх.
    """
    error: Optional[SelectionError] = None
    for _ in range(attempts):
        raw = prompter.ask(step.prompt)
        try:
            return step.parse(raw)
        except SelectionError as e:
            error = e
            if console is not None:
                console.print(f"[red]{e}[/red]")
    raise error
