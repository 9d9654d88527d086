"""sitefactory: Hugo site assembly from templates, themes, and components.

This package scaffolds static-site projects by combining a template, a theme,
and a selectable set of components into an output directory, then hands that
directory to Hugo.

The main entry point is the CLI module, which provides commands for building
sites, listing and validating templates, and generating new templates.

Pipeline modules, leaves first:
- components: Loads components.yml and resolves which components are included.
- config: Applies build-time overrides to the template's hugo.toml.
- materialize: Copies the template tree, component assets, and theme.
- build: Orchestrates the steps and runs the generator.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
