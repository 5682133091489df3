import numpy as np
from numba import cuda, njit


@njit(cache=True)
def run_machine(transitions, num_symbols, max_steps, tape_size):
    """Raw fixed-tape run with no detectors: (steps, halted, score, overflow).

    ``transitions`` is the (N*K, 3) int32 array of (write, dir_bit, next_state)
    rows, halt as -1. The head starts in the middle of the tape; running off
    either end stops the run with ``overflow`` set.
    """
    tape = np.zeros(tape_size, dtype=np.uint8)
    head = tape_size // 2
    state = 0
    steps = 0
    halted = False
    overflow = False

    while steps < max_steps:
        idx = state * num_symbols + tape[head]
        tape[head] = transitions[idx, 0]
        steps += 1
        new_state = transitions[idx, 2]
        if new_state == -1:
            halted = True
            break

        if transitions[idx, 1] == 0:
            head -= 1
        else:
            head += 1
        if head < 0 or head >= tape_size:
            overflow = True
            break
        state = new_state

    score = 0
    for i in range(tape_size):
        if tape[i] != 0:
            score += 1
    return steps, halted, score, overflow


def _as_array(machine):
    if hasattr(machine, "as_array"):
        return machine.as_array()
    return np.asarray(machine, dtype=np.int32)


def evaluate_batch(machines, num_symbols, max_steps=10000, tape_size=1024, use_gpu=False):
    """
    Run a batch of compiled machines without runtime filters.
    Returns one (steps, halted, score, overflow) tuple per machine.
    """
    if not machines:
        return []
    arrays = [_as_array(machine) for machine in machines]

    if not use_gpu:
        results = []
        for transitions in arrays:
            steps, halted, score, overflow = run_machine(transitions, num_symbols, max_steps, tape_size)
            results.append((int(steps), bool(halted), int(score), bool(overflow)))
        return results

    from busybeaver.simulator.simulator_gpu import simulate_batch

    num_machines = len(arrays)

    # Allocate device arrays
    transitions = np.stack(arrays).astype(np.int32)
    tapes = np.zeros((num_machines, tape_size), dtype=np.int32)
    steps = np.zeros(num_machines, dtype=np.int64)
    halts = np.zeros(num_machines, dtype=np.bool_)
    scores = np.zeros(num_machines, dtype=np.int32)
    overflows = np.zeros(num_machines, dtype=np.bool_)

    # Transfer to device
    d_transitions = cuda.to_device(transitions)
    d_tapes = cuda.to_device(tapes)
    d_steps = cuda.to_device(steps)
    d_halts = cuda.to_device(halts)
    d_scores = cuda.to_device(scores)
    d_overflows = cuda.to_device(overflows)

    threads_per_block = 128
    blocks_per_grid = (num_machines + threads_per_block - 1) // threads_per_block

    # Launch kernel
    simulate_batch[blocks_per_grid, threads_per_block](
        d_transitions, num_symbols, d_tapes, max_steps, d_steps, d_halts, d_scores, d_overflows
    )

    # Copy results back
    return list(
        zip(
            (int(s) for s in d_steps.copy_to_host()),
            (bool(h) for h in d_halts.copy_to_host()),
            (int(s) for s in d_scores.copy_to_host()),
            (bool(o) for o in d_overflows.copy_to_host()),
        )
    )
