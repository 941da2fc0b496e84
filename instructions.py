"""The Brainfuck instruction set for `engine.Engine`.

Every command has a forward effect, used when stepping, and an inverse
effect, used when undoing. Forward effects finish by advancing the
instruction pointer and inverse effects start by retreating it."""

from collections import deque
import enum

from engine import ErrorTypes, ProgramSyntaxError, RequestingInput


class Instruction(enum.Enum):
    INCREMENT_POINTER = '>'
    DECREMENT_POINTER = '<'
    INCREMENT_CELL = '+'
    DECREMENT_CELL = '-'
    ADD_OUTPUT = '.'
    ACCEPT_INPUT = ','
    OPEN_LOOP = '['
    CLOSE_LOOP = ']'

    @property
    def symbol(self):
        return self.value

    def forward(self, engine):
        FORWARD_EFFECTS[self](engine)

    def inverse(self, engine):
        INVERSE_EFFECTS[self](engine)


COMMANDS = {instruction.symbol: instruction for instruction in Instruction}


def parse(source):
    """Return the instructions in `source`. Characters that are not
    commands are comments and are dropped."""
    instructions = []
    stack = deque()
    for location, char in enumerate(source):
        if char not in COMMANDS:
            continue
        instruction = COMMANDS[char]
        if instruction is Instruction.OPEN_LOOP:
            stack.append(location)
        elif instruction is Instruction.CLOSE_LOOP:
            try:
                stack.pop()
            except IndexError:
                raise ProgramSyntaxError(ErrorTypes.UNMATCHED_CLOSE_PAREN, location) from None
        instructions.append(instruction)
    if stack:
        raise ProgramSyntaxError(ErrorTypes.UNMATCHED_OPEN_PAREN, stack[-1])
    return instructions


def matching_bracket(engine, index):
    """Return the index of the bracket paired with the one at `index`."""
    instructions = engine.instructions
    if instructions[index] == Instruction.OPEN_LOOP:
        same, other = Instruction.OPEN_LOOP, Instruction.CLOSE_LOOP
        search = range(index + 1, len(instructions))
        error = ErrorTypes.UNMATCHED_OPEN_PAREN
    else:
        same, other = Instruction.CLOSE_LOOP, Instruction.OPEN_LOOP
        search = range(index - 1, -1, -1)
        error = ErrorTypes.UNMATCHED_CLOSE_PAREN

    depth = 0
    for i in search:
        if instructions[i] == same:
            depth += 1
        elif instructions[i] == other:
            if depth == 0:
                return i
            depth -= 1
    raise ProgramSyntaxError(error, index)


def increment_pointer(engine):
    engine.move_right()
    engine.advance()


def undo_increment_pointer(engine):
    engine.retreat()
    engine.move_left()


def decrement_pointer(engine):
    engine.move_left()
    engine.advance()


def undo_decrement_pointer(engine):
    engine.retreat()
    engine.move_right()


def increment_cell(engine):
    engine.transform_cell(lambda cell: (cell + 1) % 256)
    engine.advance()


def decrement_cell(engine):
    engine.transform_cell(lambda cell: (cell - 1) % 256)
    engine.advance()


def undo_increment_cell(engine):
    engine.retreat()
    engine.transform_cell(lambda cell: (cell - 1) % 256)


def undo_decrement_cell(engine):
    engine.retreat()
    engine.transform_cell(lambda cell: (cell + 1) % 256)


def add_output(engine):
    engine.output.append(engine.read_cell())
    engine.advance()


def undo_add_output(engine):
    engine.retreat()
    engine.output.pop()


def accept_input(engine):
    if not engine.input:
        raise RequestingInput('waiting for input')
    byte = engine.input.pop(0)
    # Remember the overwritten cell so undo can put it back
    engine.input_cell_history.append(engine.read_cell())
    engine.write_cell(byte)
    engine.advance()


def undo_accept_input(engine):
    engine.retreat()
    engine.input.insert(0, engine.read_cell())
    engine.write_cell(engine.input_cell_history.pop())


def open_loop(engine):
    if engine.read_cell() == 0:
        engine.jump(matching_bracket(engine, engine.instruction_pointer.index))
    engine.advance()


def undo_open_loop(engine):
    engine.retreat()
    # Landing on a ']' means the loop was skipped
    if engine.current_instruction == Instruction.CLOSE_LOOP:
        engine.jump(matching_bracket(engine, engine.instruction_pointer.index))


def close_loop(engine):
    if engine.read_cell() != 0:
        engine.jump(matching_bracket(engine, engine.instruction_pointer.index))
    engine.advance()


def undo_close_loop(engine):
    engine.retreat()
    # Landing on a '[' means the loop was repeated
    if engine.current_instruction == Instruction.OPEN_LOOP:
        engine.jump(matching_bracket(engine, engine.instruction_pointer.index))


FORWARD_EFFECTS = {
    Instruction.INCREMENT_POINTER: increment_pointer,
    Instruction.DECREMENT_POINTER: decrement_pointer,
    Instruction.INCREMENT_CELL: increment_cell,
    Instruction.DECREMENT_CELL: decrement_cell,
    Instruction.ADD_OUTPUT: add_output,
    Instruction.ACCEPT_INPUT: accept_input,
    Instruction.OPEN_LOOP: open_loop,
    Instruction.CLOSE_LOOP: close_loop,
}

INVERSE_EFFECTS = {
    Instruction.INCREMENT_POINTER: undo_increment_pointer,
    Instruction.DECREMENT_POINTER: undo_decrement_pointer,
    Instruction.INCREMENT_CELL: undo_increment_cell,
    Instruction.DECREMENT_CELL: undo_decrement_cell,
    Instruction.ADD_OUTPUT: undo_add_output,
    Instruction.ACCEPT_INPUT: undo_accept_input,
    Instruction.OPEN_LOOP: undo_open_loop,
    Instruction.CLOSE_LOOP: undo_close_loop,
}
