from numba import cuda


@cuda.jit
def simulate_batch(transitions, num_symbols, tapes, max_steps, steps_out, halts, scores, overflows):
    """
    GPU Kernel to simulate a batch of Turing machines.
    Each thread simulates one machine on its own row of ``tapes``.
    """
    idx = cuda.grid(1)
    if idx >= tapes.shape[0]:
        return

    tape_size = tapes.shape[1]
    head = tape_size // 2
    state = 0
    steps = 0
    halted = False
    overflow = False

    for i in range(tape_size):
        tapes[idx, i] = 0

    while steps < max_steps:
        symbol = tapes[idx, head]
        trans_idx = state * num_symbols + symbol
        new_symbol = transitions[idx, trans_idx, 0]
        dir_bit = transitions[idx, trans_idx, 1]
        new_state = transitions[idx, trans_idx, 2]

        # Write symbol; a halting transition still writes and counts
        tapes[idx, head] = new_symbol
        steps += 1
        if new_state == -1:
            halted = True
            break

        if dir_bit == 0:
            head -= 1
        else:
            head += 1

        # Bounds check
        if head < 0 or head >= tape_size:
            overflow = True
            break

        state = new_state

    score = 0
    for i in range(tape_size):
        if tapes[idx, i] != 0:
            score += 1

    steps_out[idx] = steps
    halts[idx] = halted
    scores[idx] = score
    overflows[idx] = overflow
