from busybeaver.logger.logger import console
from busybeaver.simulator.tape import Tape
from busybeaver.simulator.transition_table import HALT, state_letter


class TuringMachine:
    """Step-by-step interpreter for a single machine, used for inspection and visualisation.

    The batch pipeline uses ``Simulator``; this class keeps the full
    running state around so a run can be paused, printed and resumed.
    """

    def __init__(self, table, initial_tape_size=64):
        self.table = table
        self.machine = table.compile()
        self.initial_tape_size = initial_tape_size
        self.reset()

    def reset(self):
        self.tape = Tape(self.initial_tape_size)
        self.head = 0
        self.current_state = 0
        self.steps = 0
        self.halted = False

    def step(self):
        if self.halted:
            return
        write, move, next_state = self.machine.lookup(self.current_state, self.tape.read(self.head))
        self.tape.write(self.head, write)
        self.head += move
        self.steps += 1
        if next_state == HALT:
            self.halted = True
            return
        self.current_state = next_state
        self.tape.visit(self.head)

    def run(self, max_steps=10000, visualize=False):
        while not self.halted and self.steps < max_steps:
            if visualize:
                self.visualize()
            self.step()
        if visualize:
            self.visualize()
        return self.steps

    @property
    def score(self):
        return self.tape.nonblank_count()

    def serialize(self):
        return self.machine.as_array().tolist()

    def visualize(self, window=10):
        """Display a small window around the head."""
        tape_str, head_str = self.tape.render(self.head, window)
        console.print(tape_str, markup=False)
        console.print(head_str, markup=False)
        state = "Z" if self.halted else state_letter(self.current_state)
        console.print(f"State: {state}, Steps: {self.steps}, Halted: {self.halted}", markup=False)
