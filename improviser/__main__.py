import argparse
import logging
import sys
import typing

import improviser.config
import improviser.errors
import improviser.markov_model
import improviser.session
import improviser.store


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_parser () -> argparse.ArgumentParser:

	"""
	Build the command line parser.  Flags override values from the config file.
	"""

	parser = argparse.ArgumentParser(prog="improviser", description="Generate MIDI from example files with an order-boosted Markov model")
	parser.add_argument("inputs", nargs="+", help="MIDI files to train on")
	parser.add_argument("-o", "--output", default="output.mid", help="Output MIDI file (default: output.mid)")
	parser.add_argument("-c", "--config", default="improviser.yaml", help="YAML config file (default: improviser.yaml)")
	parser.add_argument("--predictability", type=int, help="Initial Markov order (1-10)")
	parser.add_argument("--boosting-steps", type=int, help="Order-boosting steps (0-15)")
	parser.add_argument("--reinforcement", type=float, help="Prediction reinforcement (100-200)")
	parser.add_argument("--threshold", type=float, dest="reinforcement_threshold", help="Reinforcement threshold (0-100)")
	parser.add_argument("--length", type=int, dest="output_length", help="Number of notes to generate (50-3000, step 50)")
	parser.add_argument("--tempo", type=int, help="Tempo in BPM (40-208)")
	parser.add_argument("--seed", type=int, help="Random seed for repeatable output")
	parser.add_argument("--save-model", help="Also write the final model as JSON to this path")
	parser.add_argument("--settings", help="YAML file that remembers settings and decoded files between runs")
	parser.add_argument("-v", "--verbose", action="store_true", help="Log every boosting step")

	return parser


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Train on the input files, generate, and write the output file.
	"""

	args = build_parser().parse_args(argv)

	if args.verbose:
		logging.getLogger("improviser").setLevel(logging.DEBUG)

	overrides = {
		name: getattr(args, name)
		for name in ("predictability", "boosting_steps", "reinforcement", "reinforcement_threshold", "output_length", "tempo", "seed")
		if getattr(args, name) is not None
	}

	store: typing.Optional[improviser.store.YamlStore] = None

	try:
		if args.settings:
			store = improviser.store.YamlStore(args.settings)
			config = improviser.config.ImproviserConfig.from_store(store)
		else:
			config = improviser.config.load_config(args.config)

		config = config.replace(**overrides)

		session = improviser.session.Improviser(config, store=store)
		session.train_files(args.inputs)
		result = session.generate()
		result.save(args.output)

		if args.save_model and session.model is not None:
			session.model.save(args.save_model)

		if store is not None:
			session.save_settings()

	except improviser.errors.ImproviserError as e:
		logger.error(f"{type(e).__name__}: {e}")
		return 1

	except OSError as e:
		logger.error(f"Failed to read or write a file: {e}")
		return 1

	logger.info(f"Wrote {len(result.events)} notes at order {result.order} to {args.output}")

	return 0


if __name__ == "__main__":
	sys.exit(main())
