"""
Workflow visualization utility
"""

from dotenv import load_dotenv

load_dotenv()


def draw_workflow_graph(output_path: str = "workflow_graph.png", fmt: str = "png") -> str:
    """
    Generate and save workflow graph visualization

    Args:
        output_path: Path where the graph will be saved
        fmt: "png" renders through the Mermaid web service, "mermaid" writes the diagram source

    Returns:
        Path to saved graph or None if failed
    """
    try:
        from ..gateway import ContentGateway
        from ..workflow import build_workflow

        # Clients are created lazily, so no credentials are needed to draw
        workflow = build_workflow(ContentGateway())
        graph = workflow.get_graph()

        if fmt == "mermaid":
            with open(output_path, "w") as f:
                f.write(graph.draw_mermaid())
        else:
            with open(output_path, "wb") as f:
                f.write(graph.draw_mermaid_png())

        return output_path

    except Exception as e:
        print(f"Error: {e}")
        print("\nPNG rendering needs network access to mermaid.ink; try the 'mermaid' format offline.")
        return None
