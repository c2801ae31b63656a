from flask_restx import Namespace, Resource, fields

from bastion.errors import ValidationError
from bastion.extensions import get_service

ns = Namespace('nodes', description='Node registration')

node_create_model = ns.model('NodeCreate', {
    'id': fields.String(required=False, description='Node ID; generated when missing'),
    'name': fields.String(required=True, description='Display name'),
    'address': fields.String(required=True, description='Base URL of the node daemon')
})

node_model = ns.model('Node', {
    'id': fields.String(description='Node ID'),
    'name': fields.String(description='Display name'),
    'address': fields.String(description='Base URL of the node daemon')
})


@ns.route('')
class NodeList(Resource):
    @ns.doc('list_nodes')
    @ns.marshal_list_with(node_model)
    def get(self):
        """List registered nodes"""
        return get_service().list_nodes(), 200

    @ns.doc('register_node')
    @ns.expect(node_create_model, validate=False)
    @ns.marshal_with(node_model, code=201)
    @ns.response(400, 'Invalid request data')
    def post(self):
        """Register a node, or replace the one with the same id"""
        data = ns.payload or {}
        if not isinstance(data, dict):
            raise ValidationError('payload must be a JSON object')

        node = get_service().register_node(
            name=data.get('name'),
            address=data.get('address'),
            node_id=data.get('id'),
        )
        return node, 201


@ns.route('/<string:node_id>')
@ns.param('node_id', 'The node identifier')
class NodeDetail(Resource):
    @ns.doc('get_node')
    @ns.marshal_with(node_model)
    @ns.response(404, 'Node not found')
    def get(self, node_id):
        """Get node details"""
        node = get_service().get_node(node_id)

        if node is None:
            ns.abort(404, f"unknown node {node_id}")

        return node, 200
