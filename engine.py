import collections
import enum
import logging


logger = logging.getLogger(__name__)


class PointerState(enum.Enum):
    START = enum.auto()
    INDEX = enum.auto()
    END = enum.auto()


class InstructionPointer:
    """Position of the engine within its instruction list.

    Either before the first instruction (`START`), on an instruction
    (`INDEX` with `index` set) or past the last one (`END`)."""

    __slots__ = ('state', 'index')

    def __init__(self, state, index=None):
        if (state is PointerState.INDEX) != (index is not None):
            raise ValueError('an index is required exactly when state is INDEX')
        self.state = state
        self.index = index

    @classmethod
    def start(cls):
        return cls(PointerState.START)

    @classmethod
    def end(cls):
        return cls(PointerState.END)

    @classmethod
    def at(cls, index):
        return cls(PointerState.INDEX, index)

    @property
    def is_start(self):
        return self.state is PointerState.START

    @property
    def is_end(self):
        return self.state is PointerState.END

    def __eq__(self, other):
        if not isinstance(other, InstructionPointer):
            return NotImplemented
        return self.state is other.state and self.index == other.index

    def __hash__(self):
        return hash((self.state, self.index))

    def __repr__(self):
        if self.state is PointerState.INDEX:
            return f'InstructionPointer.at({self.index})'
        return f'InstructionPointer.{self.state.name.lower()}()'


EngineSnapshot = collections.namedtuple(
    'EngineSnapshot',
    ['tape', 'tape_pointer', 'instruction_pointer', 'output', 'input', 'history_length'])


class Engine:
    """Reversible engine for tape based instruction lists.

    Instructions are any objects with a `symbol` and `forward(engine)` /
    `inverse(engine)` methods. Each forward effect is responsible for moving
    the instruction pointer itself, and each inverse effect must put back
    exactly what its forward effect changed, pointer motion included."""

    def __init__(self, instructions, input_data=b''):
        self.instructions = list(instructions)
        self._initial_input = bytes(input_data)
        self.reset()

    def reset(self):
        """Put the tape, pointers, history and I/O buffers back to how they
        were at construction. The instruction list is kept."""
        self.tape = bytearray(1)
        self.tape_pointer = 0
        self.instruction_pointer = InstructionPointer.start()
        self.history = []
        self.output = bytearray()
        self.input = bytearray(self._initial_input)
        self.input_cell_history = bytearray()

    def load(self, instructions):
        """Replace the instruction list without touching any other state."""
        self.instructions = list(instructions)
        index = self.instruction_pointer.index
        if index is not None and index >= len(self.instructions):
            logger.warning('instruction pointer %d is past the new program of %d instructions, '
                           'moving it to the end', index, len(self.instructions))
            self.instruction_pointer = InstructionPointer.end()
        logger.debug('loaded %d instructions', len(self.instructions))

    # Execution

    def step(self):
        """Execute the current instruction and return it.

        At either end of the instruction list nothing is executed, the
        pointer is advanced instead and None is returned."""
        instruction = self.current_instruction
        if instruction is None:
            self.advance()
            return None

        instruction.forward(self)
        self.history.append(instruction)
        logger.debug('executed %s, now at %r', instruction.symbol, self.instruction_pointer)
        return instruction

    def undo(self):
        """Reverse the most recently executed instruction and return it.

        The history entry is consumed even if its inverse effect fails."""
        try:
            instruction = self.history.pop()
        except IndexError:
            raise NoHistoryError('no previous instruction to undo') from None

        instruction.inverse(self)
        logger.debug('undid %s, now at %r', instruction.symbol, self.instruction_pointer)
        return instruction

    def run(self, max_steps=None):
        """Step until the end of the instruction list and return the output.

        Stops early once `max_steps` steps have been taken."""
        steps = 0
        while not self.instruction_pointer.is_end:
            if max_steps is not None and steps >= max_steps:
                break
            self.step()
            steps += 1
        return bytes(self.output)

    # Navigation

    def advance(self):
        pointer = self.instruction_pointer
        if pointer.is_end:
            raise NavigationExhaustedError('already at the end of the instruction list')

        next_index = 0 if pointer.is_start else pointer.index + 1
        if next_index < len(self.instructions):
            self.instruction_pointer = InstructionPointer.at(next_index)
        else:
            self.instruction_pointer = InstructionPointer.end()

    def retreat(self):
        pointer = self.instruction_pointer
        if pointer.is_start:
            raise NavigationExhaustedError('already at the start of the instruction list')

        previous_index = len(self.instructions) - 1 if pointer.is_end else pointer.index - 1
        if previous_index >= 0:
            self.instruction_pointer = InstructionPointer.at(previous_index)
        else:
            self.instruction_pointer = InstructionPointer.start()

    def jump(self, index):
        """Move the instruction pointer onto the instruction at `index`."""
        if not 0 <= index < len(self.instructions):
            raise OutOfRangeError(index, len(self.instructions) - 1 if self.instructions else None)
        self.instruction_pointer = InstructionPointer.at(index)

    def seek_forward(self, symbol):
        """Jump to the first instruction after the current one whose symbol is `symbol`."""
        pointer = self.instruction_pointer
        if pointer.is_end:
            raise NavigationExhaustedError('already at the end of the instruction list')

        start = 0 if pointer.is_start else pointer.index + 1
        for index in range(start, len(self.instructions)):
            if self.instructions[index].symbol == symbol:
                self.instruction_pointer = InstructionPointer.at(index)
                return
        raise NotFoundError(symbol, 'next')

    def seek_backward(self, symbol):
        """Jump to the nearest instruction before the current one whose symbol is `symbol`."""
        pointer = self.instruction_pointer
        if pointer.is_start:
            raise NavigationExhaustedError('already at the start of the instruction list')

        stop = len(self.instructions) if pointer.is_end else pointer.index
        for index in reversed(range(stop)):
            if self.instructions[index].symbol == symbol:
                self.instruction_pointer = InstructionPointer.at(index)
                return
        raise NotFoundError(symbol, 'previous')

    # Tape

    def move_right(self):
        self.tape_pointer += 1
        # Grow the tape when walking onto a new cell
        if self.tape_pointer == len(self.tape):
            self.tape.append(0)

    def move_left(self):
        if self.tape_pointer == 0:
            raise TapeUnderflowError('cannot move left of the first cell')
        self.tape_pointer -= 1

    def read_cell(self):
        return self.tape[self.tape_pointer]

    def write_cell(self, value):
        """Set the current cell. `value` must be a byte (0-255)."""
        self.tape[self.tape_pointer] = value

    def transform_cell(self, func):
        """Replace the current cell with `func(cell)`."""
        self.write_cell(func(self.read_cell()))

    # Input

    def supply_input(self, data):
        """Queue `data` in front of any input that is still pending."""
        self.input[:0] = data

    # State

    @property
    def current_instruction(self):
        """The instruction under the instruction pointer, or None at either end."""
        index = self.instruction_pointer.index
        if index is None:
            return None
        return self.instructions[index]

    @property
    def instruction_count(self):
        return len(self.history)

    def snapshot(self):
        return EngineSnapshot(bytes(self.tape), self.tape_pointer, self.instruction_pointer,
                              bytes(self.output), bytes(self.input), len(self.history))


class ErrorTypes(enum.Enum):
    UNMATCHED_CLOSE_PAREN = enum.auto()
    UNMATCHED_OPEN_PAREN = enum.auto()


class EngineException(Exception):
    """Base class for everything raised by an `Engine`."""


class RequestingInput(EngineException):
    """Raised by an instruction that needs a byte of input when none is queued.
    Supply input with `Engine.supply_input` and step again."""


class EngineError(EngineException):
    """Base class for ordinary engine errors. The engine is left unchanged.

    Attributes:
        message -- Description of the error."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NavigationExhaustedError(EngineError):
    """Error raised when moving past either end of the instruction list."""


class OutOfRangeError(EngineError):
    """Error raised when jumping to an index with no instruction.

    Attributes:
        index -- The requested index.
        maximum -- Highest valid index, or None for an empty program."""

    def __init__(self, index, maximum):
        if maximum is None:
            message = f'no instruction at position {index} (program is empty)'
        else:
            message = f'no instruction at position {index} (max {maximum})'
        super().__init__(message)
        self.index = index
        self.maximum = maximum


class NotFoundError(EngineError):
    """Error raised when a search finds no instruction with the wanted symbol.

    Attributes:
        symbol -- The symbol searched for."""

    def __init__(self, symbol, direction):
        super().__init__(f'no {direction} {symbol} instruction found')
        self.symbol = symbol


class NoHistoryError(EngineError):
    """Error raised when `Engine.undo` is called but nothing has been executed"""


class TapeUnderflowError(EngineError):
    """Error raised when moving left from the first cell of the tape"""


class ProgramSyntaxError(EngineError):
    """Error raised when there is a syntax error with the source code of a program.

    Attributes:
        error -- Source of error.
        location -- Location of error (default to None).
        message -- Optional mesage (default to None)."""

    def __init__(self, error, location=None, message=None):
        if message is None:
            message = error.name.lower().replace('_', ' ')
            if location is not None:
                message = f'{message} at position {location}'
        super().__init__(message)
        self.error = error
        self.location = location
