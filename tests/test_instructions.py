"""
Tests for the Brainfuck instruction set: parsing, forward execution of whole
programs and undoing them again.

Usage:
  python -m pytest tests/test_instructions.py -v
"""

import pytest

from engine import (Engine,
                    ErrorTypes,
                    InstructionPointer,
                    ProgramSyntaxError,
                    RequestingInput,
                    TapeUnderflowError)
from instructions import Instruction, matching_bracket, parse


HELLO_WORLD = ('++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]'
               '>>.>---.+++++++..+++.>>.<-.<.+++.------.--------.>>+.>++.')

# 2 * 3 * 2 into the third cell, then print it
NESTED_MULTIPLY = '++[>+++[>++<-]<-]>>.'


def engine_for(source, input_data=b''):
    return Engine(parse(source), input_data=input_data)


def undo_all(engine):
    while engine.history:
        engine.undo()


# =============================================================================
#  CATALOG / PARSER
# =============================================================================

def test_symbols_map_to_instructions():
    assert Instruction('+') is Instruction.INCREMENT_CELL
    assert Instruction.OPEN_LOOP.symbol == '['
    assert Instruction('>') == Instruction.INCREMENT_POINTER
    assert Instruction('>') != Instruction('<')
    with pytest.raises(ValueError):
        Instruction('x')


def test_parse_drops_comments():
    assert parse('+ add\n- sub') == [Instruction.INCREMENT_CELL, Instruction.DECREMENT_CELL]
    assert parse('no commands here') == []


def test_parse_unmatched_close():
    with pytest.raises(ProgramSyntaxError) as excinfo:
        parse('+a]')
    assert excinfo.value.error is ErrorTypes.UNMATCHED_CLOSE_PAREN
    assert excinfo.value.location == 2
    assert excinfo.value.message == 'unmatched close paren at position 2'


def test_parse_unmatched_open():
    with pytest.raises(ProgramSyntaxError) as excinfo:
        parse('[[]')
    assert excinfo.value.error is ErrorTypes.UNMATCHED_OPEN_PAREN
    assert excinfo.value.location == 0


def test_matching_bracket_handles_nesting():
    engine = engine_for('[[][]]')
    assert matching_bracket(engine, 0) == 5
    assert matching_bracket(engine, 5) == 0
    assert matching_bracket(engine, 1) == 2
    assert matching_bracket(engine, 4) == 3


def test_unmatched_bracket_at_run_time():
    engine = Engine([Instruction.OPEN_LOOP])
    engine.step()
    before = engine.snapshot()
    with pytest.raises(ProgramSyntaxError):
        engine.step()
    assert engine.snapshot() == before
    assert engine.history == []


# =============================================================================
#  RUNNING PROGRAMS
# =============================================================================

def test_hello_world():
    assert engine_for(HELLO_WORLD).run() == b'Hello World!\n'


def test_nested_loops():
    engine = engine_for(NESTED_MULTIPLY)
    assert engine.run() == bytes([12])
    assert engine.tape == bytearray([0, 0, 12])


def test_decrement_wraps():
    engine = engine_for('-.')
    assert engine.run() == b'\xff'


def test_skipped_loop():
    engine = engine_for('[+++]+.')
    assert engine.run() == b'\x01'


def test_move_left_of_first_cell_fails():
    engine = engine_for('<')
    engine.step()
    with pytest.raises(TapeUnderflowError):
        engine.step()
    assert engine.instruction_pointer == InstructionPointer.at(0)
    assert engine.history == []


def test_input_is_requested_then_consumed():
    engine = engine_for(',.,.')
    engine.step()
    with pytest.raises(RequestingInput):
        engine.step()
    assert engine.instruction_pointer == InstructionPointer.at(0)

    engine.supply_input(b'h')
    engine.step()
    engine.step()
    with pytest.raises(RequestingInput):
        engine.step()

    engine.supply_input(b'i')
    assert engine.run() == b'hi'


# =============================================================================
#  UNDO
# =============================================================================

@pytest.mark.parametrize('source', [
    HELLO_WORLD,
    NESTED_MULTIPLY,
    '[+++]+.',
    '+[-]',
    '++[]',
    '>>+<.<',
])
def test_run_then_undo_all_restores(source):
    engine = engine_for(source)
    engine.step()
    before = engine.snapshot()

    engine.run(max_steps=10_000)
    undo_all(engine)

    after = engine.snapshot()
    assert after.tape_pointer == before.tape_pointer
    assert after.output == before.output
    assert after.instruction_pointer == before.instruction_pointer
    # Grown cells stay on the tape but are zero again
    assert after.tape[:len(before.tape)] == before.tape
    assert not any(after.tape[len(before.tape):])


def test_undo_each_step_retraces_path():
    engine = engine_for(NESTED_MULTIPLY)
    snapshots = []
    while not engine.instruction_pointer.is_end:
        snapshots.append(engine.snapshot())
        engine.step()

    # The first step only entered the program so it has nothing to undo
    for snapshot in reversed(snapshots[1:]):
        engine.undo()
        current = engine.snapshot()
        assert current.instruction_pointer == snapshot.instruction_pointer
        assert current.tape_pointer == snapshot.tape_pointer
        assert current.tape.rstrip(b'\0') == snapshot.tape.rstrip(b'\0')
        assert current.output == snapshot.output


def test_undo_input_restores_cell_and_input():
    engine = engine_for('+++,', input_data=b'A')
    engine.run()
    assert engine.read_cell() == ord('A')
    assert engine.input == b''
    assert engine.input_cell_history == bytearray([3])

    engine.undo()

    assert engine.read_cell() == 3
    assert engine.input == b'A'
    assert engine.input_cell_history == b''
    assert engine.instruction_pointer == InstructionPointer.at(3)


def test_undo_skipped_loop_returns_to_open_bracket():
    engine = engine_for('[+]')
    engine.step()
    engine.step()
    assert engine.instruction_pointer.is_end

    engine.undo()

    assert engine.instruction_pointer == InstructionPointer.at(0)


def test_undo_repeated_loop_returns_to_close_bracket():
    engine = engine_for('++[-]')
    for _ in range(6):
        engine.step()
    # ']' jumped back onto the '-'
    assert engine.instruction_pointer == InstructionPointer.at(3)

    engine.undo()

    assert engine.instruction_pointer == InstructionPointer.at(4)
    assert engine.read_cell() == 1


def test_undo_output():
    engine = engine_for('+.')
    engine.run()
    assert engine.output == b'\x01'
    engine.undo()
    assert engine.output == b''
    assert engine.instruction_pointer == InstructionPointer.at(1)
