"""
Improviser - order-boosted Markov improvisation over MIDI material.

Improviser learns note-to-note transitions from example MIDI files and
generates new material in the same vein.  A plain Markov chain of high order
mostly replays its training data; one of low order wanders.  Improviser
starts low and climbs:

- **Order boosting.** A base model is trained at a low order (the
  *predictability*).  It generates a sequence, and a new model one order
  higher is trained on that sequence alone.  Repeating this lets
  higher-order structure emerge from material the source files never
  contained.
- **Prediction reinforcement.** Before each draw, transitions whose
  probability falls below a threshold are boosted, which keeps high-order
  chains from collapsing into short loops.
- **Joint note tokens.** Pitch, velocity, duration, and the gap to the
  previous note are learned and generated as one unit.
- **Deterministic.** All randomness flows from one injected
  ``random.Random``; a seed makes every run repeatable.

Minimal example:

    ```python
    import improviser

    session = improviser.Improviser(improviser.ImproviserConfig(predictability=2, boosting_steps=4, seed=1))
    session.train_files(["bach.mid", "chopin.mid"])
    session.generate().save("output.mid")
    ```

Package-level exports: ``Improviser``, ``ImproviserConfig``, ``MarkovModel``,
``OrderBooster``, ``Generator``, ``Sampler``, ``reinforce``.
"""

import improviser.booster
import improviser.config
import improviser.generator
import improviser.markov_model
import improviser.reinforcement
import improviser.sampler
import improviser.session


Improviser = improviser.session.Improviser
ImproviserConfig = improviser.config.ImproviserConfig
MarkovModel = improviser.markov_model.MarkovModel
OrderBooster = improviser.booster.OrderBooster
Generator = improviser.generator.Generator
Sampler = improviser.sampler.Sampler
reinforce = improviser.reinforcement.reinforce
