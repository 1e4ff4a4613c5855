import pytest

from PhyShift.Settings import DEFAULTS, Settings, SettingsError
from PhyShift.Prior import Prior
from PhyShift.Model import Model
from PhyShift.ParameterModel import TokenParameters
from PhyShift.TreeParser import TreeParserError
from helpers import BOUNDARY_NEWICK


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def test_defaults():
    settings = Settings()
    for key, (default, _) in DEFAULTS.items():
        assert settings.get(key) == default
    assert settings.get_local_global_move_ratio() == 10.0
    assert settings.get_tree_file_name() is None


def test_control_file(tmp_path):
    filename = write(tmp_path, "control.txt",
                     "# run settings\n"
                     "treefile = whales.tre\n"
                     "\n"
                     "seed = 42   # fixed\n"
                     "poissonRatePrior = 2\n"
                     "numberOfGenerations = 500\n")
    settings = Settings.from_file(filename)

    assert settings.get_tree_file_name() == "whales.tre"
    assert settings.get_seed() == 42
    assert settings.get_poisson_rate_prior() == 2.0
    assert settings.get_number_of_generations() == 500
    assert settings.get_event_data_infile() is None


def test_control_file_bad_line(tmp_path):
    filename = write(tmp_path, "control.txt", "treefile whales.tre\n")
    with pytest.raises(SettingsError):
        Settings.from_file(filename)


def test_control_file_missing(tmp_path):
    with pytest.raises(SettingsError):
        Settings.from_file(str(tmp_path / "nope.txt"))


def test_unknown_setting_warns():
    with pytest.warns(UserWarning, match = "burnin"):
        settings = Settings({"burnin": 10})
    with pytest.raises(SettingsError):
        settings.get("burnin")


@pytest.mark.parametrize("key, value", [
    ("poissonRatePrior", "0"),
    ("poissonRatePrior", "lots"),
    ("updateEventLocationScale", -0.5),
    ("numberOfGenerations", "ten"),
    ("localGlobalMoveRatio", -1),
])
def test_bad_values(key, value):
    with pytest.raises(SettingsError):
        Settings({key: value})


def test_none_clears_optional_setting():
    settings = Settings({"seed": "none", "treefile": ""})
    assert settings.get_seed() is None
    assert settings.get_tree_file_name() is None


def test_prior_follows_settings():
    prior = Prior(Settings({"poissonRatePrior": 2.0}))
    # Exponential with rate 2: log(2) - 2x
    assert prior.poisson_rate_prior(0.5) == pytest.approx(0.6931471805599453 - 1.0)
    assert prior.poisson_rate_prior(-1.0) == float("-inf")
    # Poisson with mean 1.5 at k = 2: 2 log(1.5) - 1.5 - log(2)
    assert prior.event_number_prior(2, 1.5) == pytest.approx(-1.3822169208297945)

############################
#### MODEL FROM SETTINGS ###
############################

def test_model_from_settings(tmp_path):
    tree_file = write(tmp_path, "tree.tre", BOUNDARY_NEWICK + "\n")
    event_file = write(tmp_path, "events.txt", "Z W 2.0 0.3\n")
    settings = Settings({"treefile": tree_file,
                         "eventDataInfile": event_file,
                         "seed": 5})

    model = Model.from_settings(settings, TokenParameters((0.1,)))

    # Y covers [3, 7) and sits 4 from the root, so time 2 maps to 5
    event, = model.get_events()
    assert event.get_map_time() == 5.0
    assert event.get_event_node().get_name() == "Y"
    model.check_branch_histories()


def test_model_from_settings_is_reproducible(tmp_path):
    tree_file = write(tmp_path, "tree.tre", BOUNDARY_NEWICK + "\n")
    settings = Settings({"treefile": tree_file, "seed": 8})

    positions = []
    for _ in range(2):
        model = Model.from_settings(settings, TokenParameters())
        positions.append(model.add_event_to_tree().get_map_time())
    assert positions[0] == positions[1]


def test_model_needs_tree_file():
    with pytest.raises(SettingsError):
        Model.from_settings(Settings(), TokenParameters())


def test_model_with_unreadable_tree(tmp_path):
    tree_file = write(tmp_path, "tree.tre", "(A:1,B:1,C:1);\n")
    with pytest.raises(TreeParserError):
        Model.from_settings(Settings({"treefile": tree_file}), TokenParameters())
