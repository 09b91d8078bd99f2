"""
Main NiceGUI application for the flow editor.

Renders the graph held by FlowEditor with ui.echart and provides the toolbar:
add node, auto-layout, edge type, animation, connect, save/load, import/export
and clear. All graph changes go through FlowEditor; this file only draws and
forwards user input.
"""

import logging
import sys
from typing import Any, Dict

from dotenv import load_dotenv
from nicegui import ui

load_dotenv()

from src.config import get_editor_config
from src.editor import FlowEditor
from src.errors import FlowError, MalformedDocument
from src.graph_viz import build_echart_options, normalize_click_payload, resolve_selection
from src.inline_edit import InlineEditor
from src.layout import LayoutStrategy
from src.models import ConditionalHandle, NodeVariant, PathType

config = get_editor_config()
logging.basicConfig(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)


def event_payload(event: Any) -> Dict[str, Any]:
    """Turn a NiceGUI echart point-click event into the dict shape graph_viz expects."""
    if hasattr(event, 'component_type'):
        return {
            'componentType': event.component_type,
            'dataType': getattr(event, 'data_type', None),
            'name': getattr(event, 'name', None),
            'value': getattr(event, 'value', None),
        }
    raw = event.args if hasattr(event, 'args') else event
    return normalize_click_payload(raw)


@ui.page('/')
def main_page():
    flow = FlowEditor(config=config)
    flow.seed_welcome()

    state: Dict[str, Any] = {
        'chart': None,
        'selection': None,  # ('node' | 'edge', id)
        'details_container': None,
    }

    def notify_error(title: str, error: Exception):
        logger.warning(f"{title}: {error}")
        ui.notify(f"{title}: {error}", type='negative')

    # --- Rendering ---

    def refresh_chart(snapshot=None):
        chart = state['chart']
        if chart is None:
            return
        chart.options.clear()
        chart.options.update(build_echart_options(snapshot or flow.snapshot()))
        chart.update()

    flow.store.subscribe(refresh_chart)

    def render_inline_editor(editor: InlineEditor):
        """View mode shows the committed text; double click switches to inputs."""
        if not editor.state.is_editing:
            values = editor.committed_values()
            with ui.column().classes('w-full gap-1') as view:
                for name in editor.fields:
                    ui.label(values[name] or f'(no {name})').classes(
                        'text-lg font-bold' if name == 'label' else 'text-sm text-gray-500')
                ui.label('Double-click to edit').classes('text-xs text-gray-400')

            def begin(_=None):
                editor.begin_edit()
                show_details()

            view.on('dblclick', begin)
            return

        def commit(_=None):
            if editor.state.is_editing:
                editor.commit()
                show_details()

        for i, name in enumerate(editor.fields):
            field_input = ui.input(
                name.capitalize(),
                value=editor.state.buffer.get(name, ''),
                on_change=lambda e, n=name: editor.set_value(n, e.value or ''),
            ).classes('w-full')
            if i == 0:
                field_input.props('autofocus')
            # Enter and Escape both commit, like losing focus
            field_input.on('keydown.enter', commit)
            field_input.on('keydown.escape', commit)
            field_input.on('blur', commit)

    def show_details():
        container = state['details_container']
        if container is None:
            return
        container.clear()
        selection = state['selection']
        if not selection:
            with container:
                ui.label('Select a node or edge').classes('text-gray-400')
            return

        kind, entity_id = selection
        snap = flow.snapshot()
        ids = [n.id for n in snap.nodes] if kind == 'node' else [e.id for e in snap.edges]
        if entity_id not in ids:
            state['selection'] = None
            show_details()
            return

        editor = flow.node_editor(entity_id) if kind == 'node' else flow.edge_editor(entity_id)
        with container:
            ui.label(f'{kind.capitalize()} {entity_id}').classes('text-xs text-gray-400')
            render_inline_editor(editor)
            if kind == 'node':
                ui.button('Delete node', icon='delete', on_click=lambda: delete_node(entity_id, False)).props('flat color=negative')
                ui.button('Delete with edges', icon='delete_sweep', on_click=lambda: delete_node(entity_id, True)).props('flat color=negative')
            else:
                render_edge_style(next(e for e in snap.edges if e.id == entity_id))
                ui.button('Delete edge', icon='close', on_click=lambda: delete_edge(entity_id)).props('flat color=negative')

    def render_edge_style(edge):
        # Imported edges may carry a path type this editor does not know
        current = edge.path_type.value if isinstance(edge.path_type, PathType) else None
        ui.select(
            {p.value: p.value.capitalize() for p in PathType},
            value=current,
            label='Edge type',
            on_change=lambda e: flow.set_edge_style(edge.id, path_type=e.value) if e.value else None,
        ).classes('w-full')
        ui.switch('Animated', value=bool(edge.animated),
                  on_change=lambda e: flow.set_edge_style(edge.id, animated=bool(e.value)))

    # --- Actions ---

    def handle_chart_click(event):
        payload = event_payload(event)
        state['selection'] = resolve_selection(payload, flow.snapshot())
        show_details()

    def add_node(variant: NodeVariant):
        flow.add_node(variant)
        name = variant.value.capitalize()
        ui.notify(f'{name} node has been added to the flow.')

    def apply_layout(strategy: LayoutStrategy):
        flow.apply_layout(strategy)
        ui.notify(f'{strategy.value.capitalize()} layout has been applied.')

    def set_edge_type(path_type: PathType):
        flow.set_edge_type(path_type)
        ui.notify(f'Edge type: {path_type.value}')

    def delete_node(node_id: str, cascade: bool):
        flow.remove_node(node_id, cascade=cascade)
        state['selection'] = None
        show_details()

    def delete_edge(edge_id: str):
        flow.remove_edge(edge_id)
        state['selection'] = None
        show_details()

    def save():
        try:
            flow.save()
        except OSError as e:
            notify_error('Save failed', e)
            return
        ui.notify('Your flow has been saved.', type='positive')

    def load():
        try:
            restored = flow.load()
        except (MalformedDocument, OSError) as e:
            notify_error('Failed to restore the saved flow', e)
            return
        if not restored:
            ui.notify('Nothing saved yet.')
            return
        state['selection'] = None
        show_details()
        ui.notify('Saved flow restored.', type='positive')

    def export():
        filename, text = flow.export_document()
        ui.download(text.encode('utf-8'), filename)
        ui.notify('Your flow has been exported as a JSON file.')

    async def handle_upload(e):
        if hasattr(e, 'file'):
            contents = await e.file.read()
        else:
            contents = e.content.read()
        try:
            flow.import_file(contents)
        except MalformedDocument:
            ui.notify('Failed to load flow. Please check the file format.', type='negative')
            return
        state['selection'] = None
        show_details()
        ui.notify('Flow imported.', type='positive')

    def clear():
        flow.clear()
        state['selection'] = None
        show_details()
        ui.notify('All nodes and connections have been removed.')

    def open_connect_dialog():
        snap = flow.snapshot()
        options = {n.id: f'{n.label or n.id} ({n.id})' for n in snap.nodes}
        if len(options) < 1:
            ui.notify('Add a node first.')
            return
        with ui.dialog() as dialog, ui.card().classes('w-96'):
            ui.label('Connect nodes').classes('text-lg font-bold')
            source = ui.select(options, label='From').classes('w-full')
            target = ui.select(options, label='To').classes('w-full')
            handle = ui.select({None: 'default', ConditionalHandle.TRUE: 'true branch',
                                ConditionalHandle.FALSE: 'false branch'},
                               value=None, label='Output handle').classes('w-full')

            def do_connect():
                try:
                    flow.connect(source.value, target.value, source_handle=handle.value)
                except FlowError as err:
                    notify_error('Cannot connect', err)
                    return
                dialog.close()

            with ui.row().classes('w-full justify-end'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('Connect', on_click=do_connect).props('color=primary')
        dialog.open()

    # --- Layout Construction ---

    with ui.header().classes('items-center gap-2 bg-slate-800'):
        ui.icon('account_tree', size='md')
        ui.label('Flow Editor').classes('text-lg font-bold mr-4')

        with ui.dropdown_button('Add Node', icon='add').props('flat color=white'):
            for variant in NodeVariant:
                ui.item(variant.value.capitalize(), on_click=lambda v=variant: add_node(v))

        with ui.dropdown_button('Auto Layout', icon='grid_view').props('flat color=white'):
            for strategy in LayoutStrategy:
                ui.item(strategy.value.capitalize(), on_click=lambda s=strategy: apply_layout(s))

        with ui.dropdown_button('Edge Type', icon='timeline').props('flat color=white'):
            for path_type in PathType:
                ui.item(path_type.value.capitalize(), on_click=lambda p=path_type: set_edge_type(p))

        ui.switch('Animated', value=flow.edges_animated,
                  on_change=lambda e: flow.set_edges_animated(bool(e.value))).props('color=white')
        ui.button('Connect', icon='link', on_click=open_connect_dialog).props('flat color=white')

        ui.space()
        ui.button('Save', icon='save', on_click=save).props('flat color=white')
        ui.button('Restore', icon='restore', on_click=load).props('flat color=white')
        ui.upload(label='Import', on_upload=handle_upload, auto_upload=True).props(
            'accept=.json flat dense color=white').classes('w-40')
        ui.button('Export', icon='download', on_click=export).props('flat color=white')
        ui.button('Clear', icon='delete', on_click=clear).props('flat color=negative')

    with ui.row().classes('w-full no-wrap gap-4'):
        state['chart'] = ui.echart(build_echart_options(flow.snapshot()), on_point_click=handle_chart_click)
        state['chart'].classes('flex-grow').style('height: 80vh')
        with ui.card().classes('w-80'):
            state['details_container'] = ui.column().classes('w-full gap-3')
    show_details()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='Flow Editor',
        port=config.port,
        reload=not getattr(sys, 'frozen', False),
    )
