"""
Tests for neuroevolution operators and population management.

Tests the crossover, mutation, ranking and population classes for:
- Averaging crossover correctness
- Mutation gate and scaling range
- Mutation-rate hysteresis
- Elitist in-place reproduction
- Checkpoints
"""
import random
from fractions import Fraction
from unittest.mock import patch

import pytest
import torch

from evo2048.ai.evolution import (
    AveragingCrossover,
    EvolutionConfig,
    Individual,
    MutationRateSchedule,
    Population,
    ScalingMutator,
    median_fitness,
    rank_population,
)
from evo2048.ai.matches import GameResult
from .factories import EvolutionConfigFactory, IndividualFactory, build_network


class ScriptedEvaluator:
    """Evaluator that hands out fixed scores instead of playing."""

    def __init__(self, scores):
        self.scores = list(scores)
        self.calls = []

    def evaluate(self, individuals, generation=0):
        self.calls.append(generation)
        results = []
        for individual, score in zip(individuals, self.scores):
            individual.fitness = score
            results.append(GameResult(score=score, max_tile=score // 8, game_over=True))
        return results


def genomes_equal(a, b):
    return all(torch.allclose(pa, pb) for pa, pb in zip(a.parameters(), b.parameters()))


class TestAveragingCrossover:
    """Tests for AveragingCrossover."""

    @pytest.fixture
    def parents(self):
        return build_network(seed=1), build_network(seed=2)

    def test_child_is_parent_mean(self, parents):
        a, b = parents
        child = AveragingCrossover().crossover(a, b)

        for pc, pa, pb in zip(child.parameters(), a.parameters(), b.parameters()):
            assert torch.allclose(pc, (pa + pb) / 2)

    def test_child_copies_topology(self, parents):
        a, b = parents
        child = AveragingCrossover().crossover(a, b)
        assert child.topology == a.topology
        assert child.architecture == a.architecture

    def test_self_crossover_copies_genome(self, parents):
        a, _ = parents
        child = AveragingCrossover().crossover(a, a)
        assert genomes_equal(child, a)
        assert child is not a

    def test_parents_unchanged(self, parents):
        a, b = parents
        before = [p.clone() for p in a.parameters()]

        child = AveragingCrossover().crossover(a, b)
        child.output_layer.weights.mul_(3)

        for orig, current in zip(before, a.parameters()):
            assert torch.equal(orig, current)

    def test_mismatched_topology_raises(self):
        a = build_network(seed=1, hidden_size=8)
        b = build_network(seed=2, hidden_size=6)
        with pytest.raises(ValueError, match="Parents must have identical architectures"):
            AveragingCrossover().crossover(a, b)

    def test_mismatched_depth_raises(self):
        a = build_network(seed=1, hidden_layers=1)
        b = build_network(seed=2, hidden_layers=2)
        with pytest.raises(ValueError):
            AveragingCrossover().crossover(a, b)


class TestScalingMutator:
    """Tests for ScalingMutator."""

    @pytest.fixture
    def ones_network(self):
        network = build_network(seed=3)
        for layer in network.layers[1:]:
            layer.weights = torch.ones_like(layer.weights)
        return network

    @pytest.fixture
    def mutator(self):
        return ScalingMutator(rng=random.Random(0), generator=torch.Generator().manual_seed(0))

    def test_gate_off_leaves_genome(self, mutator, ones_network):
        before = [p.clone() for p in ones_network.parameters()]

        network, fired = mutator.mutate(ones_network, mutation_rate=0.0)

        assert not fired
        for orig, current in zip(before, network.parameters()):
            assert torch.equal(orig, current)

    def test_gate_on_scales_weights_only(self, mutator, ones_network):
        biases_before = [layer.biases.clone() for layer in ones_network.layers]

        network, fired = mutator.mutate(ones_network, mutation_rate=1.0)

        assert fired
        for layer, biases in zip(network.layers, biases_before):
            assert torch.equal(layer.biases, biases)
        for layer in network.layers[1:]:
            # weights were 1, so each weight now equals its factor
            assert layer.weights.min() >= -1.5
            assert layer.weights.max() < 1.5
            assert not torch.equal(layer.weights, torch.ones_like(layer.weights))

    def test_input_layer_untouched(self, mutator, ones_network):
        network, _ = mutator.mutate(ones_network, mutation_rate=1.0)
        assert network.input_layer.weights is None
        assert torch.equal(network.input_layer.biases, torch.zeros(16))

    def test_zero_weight_stays_zero(self, mutator, ones_network):
        ones_network.output_layer.weights[0, 0] = 0.0
        network, _ = mutator.mutate(ones_network, mutation_rate=1.0)
        assert network.output_layer.weights[0, 0].item() == 0.0

    def test_single_draw_gates_whole_genome(self, mutator, ones_network):
        with patch.object(mutator.rng, 'random', return_value=0.5) as draw:
            _, fired = mutator.mutate(ones_network, mutation_rate=0.6)
        assert fired
        draw.assert_called_once()

        with patch.object(mutator.rng, 'random', return_value=0.5):
            _, fired = mutator.mutate(ones_network, mutation_rate=0.4)
        assert not fired

    def test_not_in_place(self, mutator, ones_network):
        network, fired = mutator.mutate(ones_network, mutation_rate=1.0, in_place=False)
        assert fired
        assert network is not ones_network
        assert torch.equal(ones_network.output_layer.weights, torch.ones(4, 8))

    def test_invalid_bounds_raise(self):
        with pytest.raises(ValueError):
            ScalingMutator(low=1.0, high=1.0)


class TestMutationRateSchedule:
    """Tests for the hysteresis band on median fitness."""

    @pytest.fixture
    def schedule(self):
        return MutationRateSchedule()

    def test_low_median_raises_rate(self, schedule):
        assert schedule.update(0.05, 1999) == 0.20

    def test_high_median_lowers_rate(self, schedule):
        assert schedule.update(0.20, 2201) == 0.05

    @pytest.mark.parametrize('current', [0.05, 0.20, 0.13])
    @pytest.mark.parametrize('median', [2000, 2100, 2200])
    def test_band_keeps_rate(self, schedule, current, median):
        assert schedule.update(current, median) == current

    def test_inverted_band_raises(self):
        with pytest.raises(ValueError):
            MutationRateSchedule(low_threshold=3000, high_threshold=2000)


class TestRanking:
    """Tests for ranking helpers."""

    def test_rank_population_descending(self):
        individuals = [IndividualFactory(fitness=f) for f in (10, 40, 20, 30)]
        ranked = rank_population(individuals)
        assert [ind.fitness for ind in ranked] == [40, 30, 20, 10]
        assert [ind.fitness for ind in individuals] == [10, 40, 20, 30]

    def test_rank_is_stable(self):
        individuals = [IndividualFactory(fitness=5) for _ in range(3)]
        assert rank_population(individuals) == individuals

    def test_median_fitness(self):
        ranked = [IndividualFactory(fitness=f) for f in (50, 40, 30, 20)]
        assert median_fitness(ranked) == 30

    def test_median_fitness_empty(self):
        assert median_fitness([]) is None

    def test_individual_gets_id(self):
        individual = Individual(network=build_network())
        assert len(individual.id) == 8
        assert individual.moves_left == 3


class TestEvolutionConfig:
    """Tests for EvolutionConfig."""

    @pytest.mark.parametrize('size, expected', [(6, 5), (7, 5), (60, 50), (1, 0), (12, 10)])
    def test_replace_count(self, size, expected):
        assert EvolutionConfig(population_size=size).replace_count == expected

    def test_float_fraction_is_exact(self):
        config = EvolutionConfig(population_size=600, replace_fraction=5 / 6)
        assert config.replace_fraction == Fraction(5, 6)
        assert config.replace_count == 500

    @pytest.mark.parametrize('kwargs', [
        {'population_size': 0},
        {'generations': 0},
        {'mutation_rate': -0.1},
        {'high_mutation_rate': 1.5},
        {'replace_fraction': 1},
        {'executor': 'greenlet'},
        {'workers': 0},
        {'move_budget': 0},
        {'low_median_threshold': 3000},
    ])
    def test_invalid_values_raise(self, kwargs):
        with pytest.raises(ValueError):
            EvolutionConfig(**kwargs)


class TestPopulation:
    """Tests for Population."""

    SCORES = [100, 600, 300, 500, 200, 400]

    @pytest.fixture
    def config(self):
        return EvolutionConfigFactory(
            population_size=6,
            generations=3,
            high_mutation_rate=0.0,
            low_mutation_rate=0.0,
            mutation_rate=0.0,
        )

    @pytest.fixture
    def population(self, config):
        pop = Population(config, evaluator=ScriptedEvaluator(self.SCORES))
        pop.initialize_random()
        return pop

    def test_initialize_random(self, population):
        assert len(population.individuals) == 6
        assert all(ind.network.topology == (16, 8, 4) for ind in population.individuals)
        assert len({ind.id for ind in population.individuals}) == 6

    def test_initialize_rejects_wrong_input_size(self, population):
        from evo2048.ai.networks import create_architecture
        with pytest.raises(ValueError):
            population.initialize_random(create_architecture(input_size=9))

    def test_same_seed_same_genomes(self, config):
        a = Population(config, evaluator=ScriptedEvaluator(self.SCORES))
        b = Population(config, evaluator=ScriptedEvaluator(self.SCORES))
        a.initialize_random()
        b.initialize_random()
        for ia, ib in zip(a.individuals, b.individuals):
            assert genomes_equal(ia.network, ib.network)

    def test_evaluate_all_ranks_and_reports(self, population):
        stats = population.evaluate_all()

        assert [ind.fitness for ind in population.individuals] == [600, 500, 400, 300, 200, 100]
        assert stats.best_fitness == 600
        assert stats.median_fitness == 300
        assert stats.min_fitness == 100
        assert stats.avg_fitness == pytest.approx(350)
        assert stats.max_tile == 75
        assert population.stats_history == [stats]

    def test_evaluate_all_logs_generation(self, population, caplog):
        with caplog.at_level('INFO', logger='evo2048.ai.evolution.population'):
            population.evaluate_all()
        assert "best score:   600, median:   300" in caplog.text

    def test_low_median_raises_mutation_rate(self, config):
        config.high_mutation_rate = 0.2
        pop = Population(config, evaluator=ScriptedEvaluator(self.SCORES))
        pop.initialize_random()

        stats = pop.evaluate_all()

        assert pop.mutation_rate == 0.2
        assert stats.mutation_rate == 0.2

    def test_high_median_lowers_mutation_rate(self, config):
        config.mutation_rate = 0.2
        config.low_mutation_rate = 0.05
        pop = Population(config, evaluator=ScriptedEvaluator([s * 10 for s in self.SCORES]))
        pop.initialize_random()

        pop.evaluate_all()

        assert pop.mutation_rate == 0.05

    def test_evaluate_empty_population_raises(self, config):
        pop = Population(config, evaluator=ScriptedEvaluator(self.SCORES))
        with pytest.raises(ValueError):
            pop.evaluate_all()

    def test_evolve_generation_replaces_bottom_five_sixths(self, population):
        population.evaluate_all()
        ranked = list(population.individuals)
        best = ranked[0]

        stats = population.evolve_generation()

        assert stats.num_offspring == 5
        assert population.individuals[0] is best
        assert all(ind.generation == 1 for ind in population.individuals[1:])
        assert all(ind.parent_ids[0] == best.id for ind in population.individuals[1:])
        assert population.generation == 1

    def test_best_paired_with_itself_first(self, population):
        population.evaluate_all()
        best = population.individuals[0]

        population.evolve_generation()

        last = population.individuals[-1]
        assert last.parent_ids == [best.id, best.id]
        assert genomes_equal(last.network, best.network)

    def test_partners_are_current_occupants(self, population):
        population.evaluate_all()
        ranked = list(population.individuals)

        population.evolve_generation()
        individuals = population.individuals

        # slots 5, 4 and 3 were bred with the original ranks 0, 1 and 2
        assert individuals[5].parent_ids[1] == ranked[0].id
        assert individuals[4].parent_ids[1] == ranked[1].id
        assert individuals[3].parent_ids[1] == ranked[2].id
        # slot 3 already held an offspring when rank 3 was bred
        assert individuals[2].parent_ids[1] == individuals[3].id
        assert individuals[1].parent_ids[1] == individuals[4].id

    def test_offspring_are_parent_means(self, population):
        population.evaluate_all()
        best, second = population.individuals[0], population.individuals[1]
        expected = AveragingCrossover().crossover(best.network, second.network)

        population.evolve_generation()

        assert genomes_equal(population.individuals[4].network, expected)

    def test_mutation_counted(self, config):
        config.high_mutation_rate = 1.0
        pop = Population(config, evaluator=ScriptedEvaluator(self.SCORES))
        pop.initialize_random()
        pop.evaluate_all()

        stats = pop.evolve_generation()

        assert stats.num_mutations == 5
        assert all('scaling' in ind.mutation_history for ind in pop.individuals[1:])

    def test_evolve_runs_all_generations(self, population):
        seen = []

        all_stats = population.evolve(progress_callback=lambda gen, stats: seen.append(gen))

        assert seen == [0, 1, 2]
        assert len(all_stats) == 3
        assert population.evaluator.calls == [0, 1, 2]
        # the last generation is ranked but not reproduced
        assert population.generation == 2
        assert population.get_best().fitness == 600

    def test_evolve_zero_generations_is_a_no_op(self, population):
        all_stats = population.evolve(generations=0)

        assert all_stats == []
        assert population.evaluator.calls == []
        assert population.generation == 0

    def test_evolve_initializes_when_empty(self, config):
        pop = Population(config, evaluator=ScriptedEvaluator(self.SCORES))
        pop.evolve(generations=1)
        assert len(pop.individuals) == 6

    def test_evolve_writes_checkpoints(self, config, tmp_path):
        config.checkpoint_interval = 2
        config.checkpoint_dir = str(tmp_path)
        pop = Population(config, evaluator=ScriptedEvaluator(self.SCORES))

        pop.evolve(generations=4)

        assert sorted(p.name for p in tmp_path.iterdir()) == [
            'population_gen00001.pt',
            'population_gen00003.pt',
        ]

    def test_checkpoint_round_trip(self, population, tmp_path):
        population.evaluate_all()

        path = population.save_checkpoint(tmp_path)
        restored = Population.from_checkpoint(path)

        assert restored.generation == population.generation
        assert restored.mutation_rate == population.mutation_rate
        assert [ind.id for ind in restored.individuals] == [ind.id for ind in population.individuals]
        assert restored.get_best().fitness == 600
        for a, b in zip(restored.individuals, population.individuals):
            assert genomes_equal(a.network, b.network)

    def test_load_checkpoint(self, population, config, tmp_path):
        population.evaluate_all()
        path = population.save_checkpoint(tmp_path)

        other = Population(config, evaluator=ScriptedEvaluator(self.SCORES))
        other.load_checkpoint(path)

        assert other.best_fitness == 600
        assert other.median_fitness == 300
        assert len(other.stats_history) == 1
