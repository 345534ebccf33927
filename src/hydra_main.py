import hydra
from omegaconf import DictConfig
from .prequential import main_describe, main_prequential
from .swknn.errors import ConfigurationError

MODES = {"prequential": main_prequential, "describe": main_describe}


@hydra.main(config_path="../configs", config_name="defaults", version_base="1.3")
def main(cfg: DictConfig):
    mode = cfg.get("mode", "prequential")
    if mode not in MODES:
        raise ConfigurationError(f"Unknown mode {mode!r}; expected one of {sorted(MODES)}")
    return MODES[mode](cfg)


if __name__ == "__main__":
    main()
