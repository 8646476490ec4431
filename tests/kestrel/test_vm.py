"""Tests for the Kestrel virtual machine."""

import pytest

from kestrel.kestrel_error import KestrelRuntimeError, KestrelTypeError
from kestrel.kestrel_frame import KestrelFunctionFrame
from kestrel.kestrel_frame_validator import ValidationError
from kestrel.kestrel_instruction import Instruction, Opcode, make_add, make_load_constant, make_move
from kestrel.kestrel_value import Kestrel_NIL, make_boolean, make_number
from kestrel.kestrel_vm import KestrelVM, KestrelVMState


def make_frame(instructions, constants=(), size=1, locals_=("a",), result=None):
    """Build a frame directly, bypassing the compiler."""
    return KestrelFunctionFrame(
        in_count=0,
        out_count=0,
        size=size,
        constants=tuple(constants),
        locals=tuple(locals_),
        instructions=tuple(instructions),
        result=result
    )


class TestInitialState:
    """Test a freshly created VM."""

    def test_registers_start_nil(self):
        vm = KestrelVM(make_frame([], size=3, locals_=("a", "b", "c")))
        assert vm.registers == (Kestrel_NIL, Kestrel_NIL, Kestrel_NIL)

    def test_starts_running_at_zero(self):
        vm = KestrelVM(make_frame([]))
        assert vm.pc == 0
        assert vm.state == KestrelVMState.RUNNING
        assert not vm.is_halted()

    def test_pc_is_read_only(self):
        vm = KestrelVM(make_frame([]))
        with pytest.raises(AttributeError):
            vm.pc = 3  # type: ignore[misc]


class TestStepping:
    """Test the single-step execution contract."""

    def test_empty_frame_halts_immediately(self):
        vm = KestrelVM(make_frame([]))
        assert vm.step() is False
        assert vm.is_halted()
        assert vm.pc == 0

    def test_step_counts(self):
        frame = make_frame(
            [make_load_constant(0, -1), make_add(0, 0, -1), make_move(0, -1)],
            constants=[make_number(1)]
        )
        vm = KestrelVM(frame)
        results = [vm.step() for _ in range(6)]
        assert results == [True, True, True, False, False, False]
        assert vm.pc == 3
        assert vm.state == KestrelVMState.HALTED

    def test_pc_advances_by_one(self):
        frame = make_frame([make_load_constant(0, -1), make_load_constant(0, -1)], constants=[make_number(1)])
        vm = KestrelVM(frame)
        vm.step()
        assert vm.pc == 1
        assert vm.state == KestrelVMState.RUNNING

    def test_registers_visible_between_steps(self):
        frame = make_frame(
            [make_load_constant(0, -1), make_add(0, 0, 0)],
            constants=[make_number(5)]
        )
        vm = KestrelVM(frame)
        vm.step()
        assert vm.get_register(0) == make_number(5)
        vm.step()
        assert vm.get_register(0) == make_number(10)

    def test_vms_sharing_a_frame_are_independent(self):
        frame = make_frame([make_load_constant(0, -1)], constants=[make_number(9)])
        first = KestrelVM(frame)
        second = KestrelVM(frame)
        first.step()
        assert first.get_register(0) == make_number(9)
        assert second.get_register(0) == Kestrel_NIL
        assert second.pc == 0


class TestInstructions:
    """Test instruction semantics."""

    def test_move_from_register(self):
        frame = make_frame(
            [make_load_constant(0, -1), make_move(1, 0)],
            constants=[make_number(3)], size=2, locals_=("a", "b")
        )
        vm = KestrelVM(frame)
        vm.step()
        vm.step()
        assert vm.get_register(1) == make_number(3)

    def test_move_from_constant(self):
        frame = make_frame([make_move(0, -2)], constants=[make_number(1), make_boolean(True)])
        vm = KestrelVM(frame)
        vm.step()
        assert vm.get_register(0) == make_boolean(True)

    def test_add_mixes_registers_and_constants(self):
        frame = make_frame(
            [make_load_constant(0, -1), make_add(1, 0, -2)],
            constants=[make_number(2), make_number(0.5)], size=2, locals_=("a", "b")
        )
        vm = KestrelVM(frame)
        vm.step()
        vm.step()
        assert vm.get_register(1) == make_number(2.5)

    def test_add_rejects_boolean(self):
        frame = make_frame([make_add(0, -1, -2)], constants=[make_number(1), make_boolean(True)])
        vm = KestrelVM(frame)
        with pytest.raises(KestrelTypeError, match="Expected a number, got boolean"):
            vm.step()

    def test_add_rejects_nil(self):
        # Register 0 still holds nil
        frame = make_frame([make_add(0, 0, -1)], constants=[make_number(1)])
        vm = KestrelVM(frame)
        with pytest.raises(KestrelTypeError, match="got nil"):
            vm.step()

    def test_type_error_is_runtime_error(self):
        assert issubclass(KestrelTypeError, KestrelRuntimeError)


class TestBoundsChecks:
    """Test fatal bounds checking on registers and constants."""

    def test_get_register_out_of_range(self):
        vm = KestrelVM(make_frame([]))
        with pytest.raises(KestrelRuntimeError, match="Invalid register index 1"):
            vm.get_register(1)

    def test_set_register_out_of_range(self):
        vm = KestrelVM(make_frame([]))
        with pytest.raises(KestrelRuntimeError, match="Invalid register index -1"):
            vm.set_register(-1, make_number(1))

    def test_get_constant_out_of_range(self):
        vm = KestrelVM(make_frame([], constants=[make_number(1)]))
        with pytest.raises(KestrelRuntimeError, match="Invalid constant index -2"):
            vm.get_constant(-2)

    def test_get_constant_with_register_reference(self):
        vm = KestrelVM(make_frame([], constants=[make_number(1)]))
        with pytest.raises(KestrelRuntimeError, match="Invalid constant index 0"):
            vm.get_constant(0)

    def test_get_value_dispatches_on_sign(self):
        vm = KestrelVM(make_frame([], constants=[make_number(8)]))
        assert vm.get_value(-1) == make_number(8)
        assert vm.get_value(0) == Kestrel_NIL

    def test_unvalidated_bad_register_fails_at_step(self):
        frame = make_frame([make_move(4, -1)], constants=[make_number(1)])
        vm = KestrelVM(frame, validate=False)
        with pytest.raises(KestrelRuntimeError, match="Invalid register index 4"):
            vm.step()

    def test_unvalidated_bad_constant_fails_at_step(self):
        frame = make_frame([make_load_constant(0, -3)], constants=[make_number(1)])
        vm = KestrelVM(frame, validate=False)
        with pytest.raises(KestrelRuntimeError, match="Invalid constant index -3"):
            vm.step()

    def test_validation_catches_bad_frame_up_front(self):
        frame = make_frame([make_move(4, -1)], constants=[make_number(1)])
        with pytest.raises(ValidationError):
            KestrelVM(frame)


class TestFaults:
    """Test VM behaviour after a runtime error."""

    def test_faulted_vm_refuses_to_step(self):
        frame = make_frame([make_add(0, 0, 0), make_load_constant(0, -1)], constants=[make_number(1)])
        vm = KestrelVM(frame)
        with pytest.raises(KestrelTypeError):
            vm.step()

        assert vm.state == KestrelVMState.FAULTED
        with pytest.raises(KestrelRuntimeError, match="faulted"):
            vm.step()

    def test_malformed_instruction(self):
        frame = make_frame([Instruction(Opcode.ADD, (0, -1))], constants=[make_number(1)])
        vm = KestrelVM(frame, validate=False)
        with pytest.raises(KestrelRuntimeError, match="Malformed instruction"):
            vm.step()


class TestReadSurface:
    """Test the state exposed to drivers and visualizers."""

    def test_result(self):
        frame = make_frame([make_load_constant(0, -1)], constants=[make_number(6)], result=0)
        vm = KestrelVM(frame)
        vm.step()
        assert vm.result() == make_number(6)

    def test_no_result(self):
        vm = KestrelVM(make_frame([]))
        assert vm.result() is None

    def test_registers_snapshot_is_immutable(self):
        vm = KestrelVM(make_frame([]))
        assert isinstance(vm.registers, tuple)

    def test_describe_state_marks_next_instruction(self):
        frame = make_frame(
            [make_load_constant(0, -1), make_add(0, 0, 0)],
            constants=[make_number(2)]
        )
        vm = KestrelVM(frame)
        vm.step()
        text = vm.describe_state()
        assert "State: running, pc: 1" in text
        assert "  k0: 2" in text
        assert ">   1: ADD 0, 0, 0" in text
        assert "  r0 a: 2" in text

    def test_repr(self):
        vm = KestrelVM(make_frame([]))
        assert repr(vm) == "KestrelVM(state=running, pc=0, size=1)"
